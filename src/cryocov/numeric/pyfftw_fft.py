import os
from threading import Lock

import pyfftw
import pyfftw.interfaces.scipy_fft as pyfft
import scipy.fft

from .base_fft import FFT

mutex = Lock()


def _threads(workers):
    return os.cpu_count() if workers == -1 else workers


class PyfftwFFT(FFT):
    """
    Define a unified wrapper class for PyFFTW functions

    To be consistent with Scipy FFT, not all arguments are included.
    Planning in FFTW is not thread safe, calls are serialized by `mutex`.
    """

    def __init__(self):
        pyfftw.interfaces.cache.enable()

    def fft(self, x, axis=-1, workers=-1):
        with mutex:
            return pyfft.fft(x, axis=axis, workers=_threads(workers))

    def ifft(self, x, axis=-1, workers=-1):
        with mutex:
            return pyfft.ifft(x, axis=axis, workers=_threads(workers))

    def fft2(self, x, axes=(-2, -1), workers=-1):
        with mutex:
            return pyfft.fft2(x, axes=axes, workers=_threads(workers))

    def ifft2(self, x, axes=(-2, -1), workers=-1):
        with mutex:
            return pyfft.ifft2(x, axes=axes, workers=_threads(workers))

    def fftn(self, x, axes=None, workers=-1):
        with mutex:
            return pyfft.fftn(x, axes=axes, workers=_threads(workers))

    def ifftn(self, x, axes=None, workers=-1):
        with mutex:
            return pyfft.ifftn(x, axes=axes, workers=_threads(workers))

    def fftshift(self, x, axes=None):
        return scipy.fft.fftshift(x, axes=axes)

    def ifftshift(self, x, axes=None):
        return scipy.fft.ifftshift(x, axes=axes)
