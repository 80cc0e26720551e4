import logging
from functools import partial

import numpy as np
from scipy.sparse.linalg import LinearOperator

from cryocov.exceptions import ShapeError
from cryocov.numeric import fft

logger = logging.getLogger(__name__)


class Kernel:
    pass


class FourierKernel(Kernel):
    def __init__(self, kernel, circulant=False):
        """
        A convolution kernel stored as a non-centered Fourier transform.

        :param kernel: An M-by-...-by-M array, the zero frequency at index 0.
        :param circulant: Whether the kernel acts as a periodic convolution on
            M-by-...-by-M arrays. Otherwise it acts as a linear convolution on
            arrays of side at most M / 2, zero-padded to side M.
        """
        kernel = np.asarray(kernel)
        if len(set(kernel.shape)) != 1:
            raise ShapeError(f"Convolution kernel must be cubic, received {kernel.shape}.")

        self.ndim = kernel.ndim
        self.kernel = kernel
        self.M = kernel.shape[0]
        self.dtype = kernel.dtype
        self.circulant = circulant

    def __repr__(self):
        return f"{self.__class__.__name__}(ndim={self.ndim}, M={self.M}, circulant={self.circulant})"

    def __add__(self, delta):
        """
        Add a tiny delta to the underlying kernel.

        :param delta: A scalar or an `ndarray` that can be broadcast to the `kernel` attribute of this object.
        :return: A new FourierKernel object with a modified kernel

        .. note::
            There is often a need to add a regularization parameter (a small positive value) to a FourierKernel object,
            to be able to use it within optimization loops. This operator allows one to use the FourierKernel object
            with the underlying 'kernel' attribute tweaked with a regularization parameter.
        """
        return FourierKernel(self.kernel + delta, circulant=self.circulant)

    def reciprocal(self):
        """
        :return: The kernel of the inverse convolution, `1 / kernel`.
        """
        return FourierKernel(1.0 / self.kernel, circulant=self.circulant)

    def circularize(self):
        """
        Compute the optimal circulant approximation of this kernel.

        :return: A circulant `FourierKernel` of side M / 2.
        """
        logger.info("Circularizing kernel")
        kernel = np.real(fft.ifftn(self.kernel))
        kernel = fft.mdim_fftshift(kernel)

        for dim in range(self.ndim):
            logger.debug(f"Circularizing dimension {dim}")
            kernel = self.circularize_1d(kernel, dim)

        xx = fft.fftn(fft.mdim_ifftshift(kernel)).real
        return FourierKernel(xx.astype(self.dtype, copy=False), circulant=True)

    def circularize_1d(self, kernel, dim):
        ndim = kernel.ndim
        sz = kernel.shape
        N = sz[dim] // 2

        top, bottom = np.split(kernel, 2, axis=dim)

        # Multiplier for weighted average
        mult_shape = [1] * ndim
        mult_shape[dim] = N
        mult_shape = tuple(mult_shape)

        mult = (np.arange(N, dtype=kernel.dtype) / N).reshape(mult_shape)
        kernel_circ = mult * top

        mult = (np.arange(N, 0, -1, dtype=kernel.dtype) / N).reshape(mult_shape)
        kernel_circ += mult * bottom

        return fft.fftshift(kernel_circ, axes=dim)

    def _check_volume(self, x):
        if x.ndim != self.ndim or len(set(x.shape)) != 1:
            raise ShapeError(
                f"Expected a cube of dimension {self.ndim}, received shape {x.shape}."
            )
        N = x.shape[0]
        if self.circulant and N != self.M:
            raise ShapeError(f"Circulant kernel of side {self.M} cannot convolve side {N}.")
        if not self.circulant and 2 * N > self.M:
            raise ShapeError(f"Kernel of side {self.M} cannot convolve side {N}.")
        return N

    def convolve_volume(self, x):
        """
        Convolve volume with kernel

        :param x: An N-by-...-by-N array with `ndim` axes.
        :return: The array convolved by the kernel, with the same dimensions as before.
        """
        x = np.asarray(x)
        N = self._check_volume(x)
        if not np.issubdtype(x.dtype, np.floating):
            x = x.astype(self.dtype)

        pad_width = [(0, self.M - N)] * self.ndim
        x_f = fft.fftn(np.pad(x, pad_width))

        x_f = x_f * self.kernel

        out = np.real(fft.ifftn(x_f))[(slice(0, N),) * self.ndim]

        return out.astype(x.dtype, copy=False)

    def toeplitz(self, L=None):
        """
        Compute the Toeplitz matrix corresponding to this Fourier Kernel

        :param L: The size of the volumes to be convolved (default M/2, where the dimensions of this Fourier Kernel
            are MxMxM. Circulant kernels default to M.)
        :return: A 2*ndim-dimensional Toeplitz matrix of size L describing the convolution of a volume with
            this kernel. Entry `[x, y]` is the weight of input voxel `y` in output voxel `x`.
        """
        if L is None:
            L = self.M if self.circulant else self.M // 2
        self._check_volume(np.empty((L,) * self.ndim, dtype=self.dtype))

        kernel = np.real(fft.ifftn(self.kernel))

        # Voxel offsets, periodic in M.
        diff = (np.arange(L)[:, np.newaxis] - np.arange(L)[np.newaxis, :]) % self.M
        index = []
        for d in range(self.ndim):
            shape = [1] * (2 * self.ndim)
            shape[d] = L
            shape[self.ndim + d] = L
            index.append(diff.reshape(shape))

        return kernel[tuple(index)].astype(self.dtype, copy=False)


def apply_kernel(vol_coef, kernel, basis):
    """
    Applies the kernel represented by convolution

    :param vol_coef: The volume to be convolved, stored in the basis coefficients.
    :param kernel: a Kernel object.
    :param basis: The basis of `vol_coef`.
    :return: The result of evaluating `vol_coef` in the given basis, convolving with the kernel given by
        kernel, and backprojecting into the basis.
    """
    vol = basis.evaluate(vol_coef)
    vol = kernel.convolve_volume(vol)
    return basis.evaluate_t(vol)


def kernel_operator(kernel, basis):
    """
    Wrap convolution by `kernel` in `basis` as a linear operator.

    :param kernel: a Kernel object.
    :param basis: A basis whose arrays `kernel` can convolve.
    :return: A `scipy.sparse.linalg.LinearOperator` of shape (count, count).
    """
    _apply = partial(apply_kernel, kernel=kernel, basis=basis)

    return LinearOperator(
        (basis.count, basis.count),
        matvec=lambda x: _apply(np.ravel(x)),
        dtype=basis.dtype,
    )
