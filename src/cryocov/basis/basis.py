import logging

import numpy as np

from cryocov.exceptions import ShapeError

logger = logging.getLogger(__name__)


class Basis:
    """
    Define a base class for expanding 2D images and 3D structure volumes

    A basis is a linear map from coefficient vectors of length `count` to
    arrays of shape `sz`, together with its adjoint.
    """

    # Dimension of the arrays a subclass maps to.
    dim = None

    def __init__(self, size, dtype=np.float32):
        """
        Initialize an object for the base of basis class

        :param size: The size of the arrays for which to define the basis.
            An integer implies a uniformly sized basis of `dim` dimensions.
        :param dtype: Precision of the basis, `np.float32` or `np.float64`.
        """
        if isinstance(size, (int, np.integer)):
            if self.dim is None:
                raise ValueError(f"{self.__class__.__name__} requires a tuple size.")
            size = (int(size),) * self.dim
        size = tuple(size)

        self.sz = size
        self.nres = size[0]
        self.ndim = len(size)
        self.count = 0

        self.dtype = np.dtype(dtype)
        if self.dtype not in (np.float32, np.float64):
            raise NotImplementedError(
                "Currently only implemented for float32 and float64 types"
            )

        self._build()

    def __repr__(self):
        return f"{self.__class__.__name__}(sz={self.sz}, count={self.count}, dtype={self.dtype})"

    def _build(self):
        """
        Build the internal data structure to represent basis
        """
        raise NotImplementedError("subclasses must implement this")

    def evaluate(self, v):
        """
        Evaluate coefficient vector in basis

        :param v: Array of coefficients, the last axis of length `self.count`.
            Leading axes are treated as a stack.
        :return: The evaluation of the coefficient vector(s) `v` for this basis,
            an array of shape `(..., *self.sz)`.
        """
        v = np.asarray(v)
        if v.ndim < 1 or v.shape[-1] != self.count:
            raise ShapeError(
                f"Coefficients must have last dimension {self.count}, received {v.shape}."
            )
        if v.dtype != self.dtype:
            logger.debug(
                f"{self.__class__.__name__}::evaluate"
                f" Inconsistent dtypes v: {v.dtype} self: {self.dtype}"
            )

        # Flatten stack
        stack_shape = v.shape[:-1]
        v = v.reshape(-1, self.count)
        # Compute the transform
        x = self._evaluate(v)
        # Restore stack shape
        return x.reshape(*stack_shape, *self.sz)

    def _evaluate(self, v):
        raise NotImplementedError("subclasses must implement this")

    def evaluate_t(self, x):
        """
        Evaluate coefficient in dual basis

        :param x: Array whose last `self.ndim` axes match `self.sz`.
        :return: The evaluation of `x` in the dual basis, an array of shape
            `(..., self.count)`.
        """
        x = np.asarray(x)
        if x.shape[x.ndim - self.ndim :] != self.sz:
            raise ShapeError(
                f"Last {self.ndim} dimensions of x must match {self.sz}, received {x.shape}."
            )
        if x.dtype != self.dtype:
            logger.debug(
                f"{self.__class__.__name__}::evaluate_t"
                f" Inconsistent dtypes x: {x.dtype} self: {self.dtype}"
            )

        stack_shape = x.shape[: x.ndim - self.ndim]
        x = x.reshape(-1, *self.sz)
        # Compute the adjoint
        v = self._evaluate_t(x)
        return v.reshape(*stack_shape, self.count)

    def _evaluate_t(self, x):
        raise NotImplementedError("Subclasses should implement this")

    def mat_evaluate(self, V):
        """
        Evaluate coefficient matrix in basis

        :param V: A coefficient matrix of size `self.count`-by-
            `self.count` to be evaluated.
        :return: A multidimensional matrix of size `self.sz`-by
            -`self.sz` corresponding to the evaluation of `V` in
            this basis, B V B'.
        """
        V = np.asarray(V)
        if V.shape != (self.count, self.count):
            raise ShapeError(
                f"Coefficient matrix must be {self.count}-by-{self.count}, received {V.shape}."
            )
        N = int(np.prod(self.sz))

        # Rows first, then columns.
        X = self.evaluate(V).reshape(self.count, N)
        X = self.evaluate(X.T).reshape(N, N).T

        return X.reshape(self.sz + self.sz)

    def mat_evaluate_t(self, X):
        """
        Evaluate coefficient matrix in dual basis

        :param X: The coefficient array of size `self.sz`-by-`self.sz`
            to be evaluated.
        :return: The evaluation of `X` in the dual basis. This is
            `self.count`-by-`self.count`. matrix.
            If `B` is the change-of-basis matrix of `basis`, the
            function calculates V = B' * X * B, where the rows of `B`, rows
            of 'X', and columns of `X` are read as vectorized arrays.
        """
        X = np.asarray(X)
        if X.shape != self.sz + self.sz:
            raise ShapeError(
                f"Volume matrix must have shape {self.sz + self.sz}, received {X.shape}."
            )
        N = int(np.prod(self.sz))

        V = self.evaluate_t(X.reshape(N, *self.sz))
        V = self.evaluate_t(V.T.reshape(self.count, *self.sz))

        return V.T
