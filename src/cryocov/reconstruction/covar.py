import logging

import numpy as np

from cryocov import config
from cryocov.exceptions import ConfigurationError, ShapeError
from cryocov.reconstruction.mean import src_mean_kernel
from cryocov.utils import tqdm, vecmat_to_volmat, vol_to_vec

logger = logging.getLogger(__name__)


def src_covar_backward(
    src, mean_vol, noise_var, mean_kernel=None, batch_size=None, dtype=None
):
    """
    Apply the adjoint of the covariance model to the centered images of a source.

    Every image is centered by subtracting the projection of `mean_vol`,
    back-projected, and the outer products of the resulting volumes are
    averaged over all `n` images. The expected noise contribution,
    `noise_var` times the Toeplitz matrix of the mean kernel, is subtracted.

    :param src: An `ImageSource`.
    :param mean_vol: The mean volume, an L-by-L-by-L array.
    :param noise_var: The per pixel noise variance.
    :param mean_kernel: The `FourierKernel` of `src`. Computed when needed and not given.
    :param batch_size: Number of images loaded at once.
        Defaults to the `covar.batch_size` configuration value.
    :param dtype: Precision of the accumulated volume matrix.
        Defaults to the `covar.dtype` configuration value.
    :return: An L-by-L-by-L-by-L-by-L-by-L volume matrix.
    """
    if batch_size is None:
        batch_size = config["covar"]["batch_size"].get(int)
    if not batch_size > 0:
        raise ConfigurationError(f"`batch_size` should be positive, received {batch_size}.")
    if noise_var < 0:
        raise ConfigurationError(f"`noise_var` should be non-negative, received {noise_var}.")
    if dtype is None:
        dtype = config["covar"]["dtype"].as_str()
    dtype = np.dtype(dtype)

    L, n = src.L, src.n
    if n < 1:
        raise ConfigurationError(f"{src} holds no images to estimate from.")
    mean_vol = np.asarray(mean_vol)
    if mean_vol.shape != (L, L, L):
        raise ShapeError(f"Mean volume must be of shape {(L, L, L)}, received {mean_vol.shape}.")
    mean_vol = mean_vol.astype(src.dtype, copy=False)

    covar_b = np.zeros((L**3, L**3), dtype=dtype)

    for start in tqdm(range(0, n, batch_size), desc="Covariance backward"):
        im = src.images(start, batch_size)
        num = im.shape[0]
        im_centered = im - src.vol_forward(mean_vol, start, num)

        im_centered_b = np.empty((L**3, num), dtype=dtype)
        for j in range(num):
            im_centered_b[:, j] = vol_to_vec(src.im_backward(im_centered[j], start + j))

        # Each image contributes 1/n, whatever the batch boundaries.
        covar_b += im_centered_b @ im_centered_b.T / n

    covar_b = vecmat_to_volmat(covar_b)

    if noise_var > 0:
        if mean_kernel is None:
            mean_kernel = src_mean_kernel(src, batch_size, dtype)
        covar_b -= (noise_var * mean_kernel.toeplitz(L)).astype(dtype, copy=False)

    return covar_b


class CovarianceBackProjector:
    """
    Accumulates the right hand side of the covariance least-squares problem.
    """

    def __init__(self, src, mean_kernel=None, batch_size=None, dtype=None):
        """
        :param src: An `ImageSource`.
        :param mean_kernel: Optional precomputed `FourierKernel` of `src`.
        :param batch_size: Number of images loaded at once.
        :param dtype: Precision of the accumulated volume matrix.
        """
        self.src = src
        self.mean_kernel = mean_kernel
        self.batch_size = batch_size
        self.dtype = dtype

    def backward(self, mean_vol, noise_var):
        """
        :param mean_vol: The mean volume, an L-by-L-by-L array.
        :param noise_var: The per pixel noise variance.
        :return: The debiased volume matrix, see `src_covar_backward`.
        """
        if noise_var > 0 and self.mean_kernel is None:
            self.mean_kernel = src_mean_kernel(
                self.src, self.batch_size or config["covar"]["batch_size"].get(int)
            )

        return src_covar_backward(
            self.src,
            mean_vol,
            noise_var,
            mean_kernel=self.mean_kernel,
            batch_size=self.batch_size,
            dtype=self.dtype,
        )

    def backward_coef(self, mean_vol, noise_var, basis):
        """
        :param mean_vol: The mean volume, an L-by-L-by-L array.
        :param noise_var: The per pixel noise variance.
        :param basis: A 3D basis.
        :return: The volume matrix expressed as a `basis.count`-by-`basis.count` matrix.
        """
        return basis.mat_evaluate_t(self.backward(mean_vol, noise_var))
