import logging

import numpy as np

from cryocov.basis import Basis

logger = logging.getLogger(__name__)


class DiracBasis(Basis):
    """
    Dirac basis in 1D.

    Each coefficient is the value of one voxel selected by `mask`.
    Supports subclassing higher dimensions.
    """

    dim = 1

    def __init__(self, size, mask=None, dtype=np.float32):
        """
        Initialize Dirac basis.

        :param size: The shape defining the basis.  May be a tuple
            or an integer, in which case, a uniformly sized basis is assumed.
        :param mask: A boolean mask matching `size` indicating which
            coordinates to include in the basis. Default `None`
            implies all via `np.full((size,)*dimension, True)`.
        :param dtype: Precision of the basis.
        """

        # Size
        if isinstance(size, (int, np.integer)):
            size = (int(size),) * self.dim
        size = tuple(size)

        # Masking
        if mask is None:
            mask = np.full(size, True)
        mask = np.asarray(mask)
        if mask.shape != size:
            raise ValueError(f"Invalid mask size. Should match {size} or `None`.")
        # Ensure boolean mask
        self.mask = mask.astype(bool)

        super().__init__(size, dtype=dtype)

    def _build(self):
        """Private method building basis internals."""
        self.count = int(np.count_nonzero(self.mask))

    def _evaluate(self, v):
        """
        Evaluate stack of standard coordinate coefficients from Dirac basis.

        :param v: Dirac basis coefficents. [..., self.count]
        :return:  Standard basis coefficients. [..., *self.sz]
        """
        x = np.zeros((v.shape[0], *self.sz), dtype=np.result_type(v, self.dtype))

        # Assign basis coefficient values
        x[..., self.mask] = v

        return x

    def _evaluate_t(self, x):
        """
        Evaluate stack of Dirac basis coefficients from standard basis.

        :param x:  Standard basis coefficients. [..., *self.sz]
        :return: Dirac basis coefficents. [..., self.count]
        """
        # Applying the mask should flatten mask.ndim axes
        return x[..., self.mask]


class DiracBasis2D(DiracBasis):
    """
    Dirac basis in 2D.

    See `DiracBasis` documentation.
    """

    dim = 2


class DiracBasis3D(DiracBasis):
    """
    Dirac basis in 3D.

    See `DiracBasis` documentation.
    """

    dim = 3
