"""
Accuracy metrics comparing estimated volumes and volume matrices to ground truth.
"""

import logging

import numpy as np

from cryocov.exceptions import ConfigurationError
from cryocov.utils.matrix import acorr, anorm

logger = logging.getLogger(__name__)


def _eval(x_true, x_est, ndim, name):
    if x_true.ndim < ndim:
        raise ConfigurationError(
            f"{name} must have at least {ndim} dimensions, received shape {x_true.shape}."
        )
    if x_true.shape != x_est.shape:
        raise ConfigurationError(
            f"{name} shapes must match. Received {x_true.shape} and {x_est.shape}."
        )

    axes = tuple(range(ndim))
    err = anorm(x_true - x_est, axes)
    rel_err = err / anorm(x_true, axes)
    corr = np.real(acorr(x_true, x_est, axes))

    return {"err": err, "rel_err": rel_err, "corr": corr}


def eval_vol(vol_true, vol_est):
    """
    Evaluate volume estimation accuracy

    :param vol_true: The true volume(s), an L-by-L-by-L(-by-K) array.
    :param vol_est: The estimated volume(s), same shape as `vol_true`.
    :return: A dictionary with the keys `err`, `rel_err` and `corr`, each an
        array indexed by the trailing K axes.
    """
    return _eval(vol_true, vol_est, 3, "Volumes")


def eval_volmat(volmat_true, volmat_est):
    """
    Evaluate volume matrix estimation accuracy

    :param volmat_true: The true volume matrices in the form of an
        L-by-L-by-L-by-L-by-L-by-L(-by-K) array.
    :param volmat_est: The estimated volume matrices in the same form.
    :return: A dictionary containing the evaluation results:
        - err: The norm of the difference, one entry per trailing K index.
        - rel_err: `err` relative to the norm of `volmat_true`.
        - corr: The correlation of the volume matrices, in [-1, 1].
    """
    metrics = _eval(volmat_true, volmat_est, 6, "Volume matrices")
    logger.debug(f"Volume matrix relative error {metrics['rel_err']}")
    return metrics
