import logging

from cryocov import config

logger = logging.getLogger(__name__)


def fft_object(which):
    if which == "pyfftw":
        from .pyfftw_fft import PyfftwFFT as FFTClass
    elif which == "scipy":
        from .scipy_fft import ScipyFFT as FFTClass
    else:
        raise RuntimeError(f"Invalid selection for fft class: {which}")
    logger.debug(f"Using {which} FFT.")
    return FFTClass()


fft = fft_object(config["common"]["fft"].as_str())
