"""
Miscellaneous utilities for common data type operations.
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)


def real_type(complextype):
    """
    Get Numpy real type from corresponding complex type

    :param complextype: Numpy complex type
    :return realtype: Numpy real type
    """
    complextype = np.dtype(complextype)
    if complextype == np.complex64:
        return np.dtype(np.float32)
    elif complextype == np.complex128:
        return np.dtype(np.float64)
    elif complextype in (np.float32, np.float64):
        return complextype

    msg = f"Corresponding real type is not defined for {complextype}."
    logger.error(msg)
    raise TypeError(msg)


def complex_type(realtype):
    """
    Get Numpy complex type from corresponding real type

    :param realtype: Numpy real type
    :return complextype: Numpy complex type
    """
    realtype = np.dtype(realtype)
    if realtype == np.float32:
        return np.dtype(np.complex64)
    elif realtype == np.float64:
        return np.dtype(np.complex128)
    elif realtype in (np.complex64, np.complex128):
        return realtype

    msg = f"Corresponding complex type is not defined for {realtype}."
    logger.error(msg)
    raise TypeError(msg)


def utest_tolerance(dtype):
    """
    Return tolerance for unit tests based on `dtype`.
    """

    dtype = real_type(dtype)
    if dtype == np.float64:
        # Default np.allclose atol
        return 1e-8
    return 1e-5
