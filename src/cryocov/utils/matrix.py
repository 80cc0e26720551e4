"""
Utilities for arrays/n-dimensional matrices.

Volumes are flattened in C order, so that a volume-matrix `X` of shape
`(L,)*6` and its matrix form `M` of shape `(L**3, L**3)` satisfy
`X[a, b, c, d, e, f] == M[(a, b, c), (d, e, f)]`.
"""

import numpy as np


def vol_to_vec(X):
    """
    Unroll volumes into vectors

    :param X: An L-by-L-by-L-by-... array.
    :return: An L**3-by-... array of vectorized volumes.
    """
    L = X.shape[0]
    return X.reshape(L**3, *X.shape[3:])


def vec_to_vol(X):
    """
    Roll up vectors into volumes

    :param X: An N-by-... array with N a perfect cube.
    :return: An L-by-L-by-L-by-... array of volumes, with L = N**(1/3).
    """
    L = round(X.shape[0] ** (1 / 3))
    if L**3 != X.shape[0]:
        raise ValueError(f"Length {X.shape[0]} is not a perfect cube.")
    return X.reshape(L, L, L, *X.shape[1:])


def vecmat_to_volmat(X):
    """
    Roll up vector matrices into volume matrices

    :param X: An N-by-N-by-... array with N a perfect cube.
    :return: An L-by-L-by-L-by-L-by-L-by-L-by-... volume matrix.
    """
    L = round(X.shape[0] ** (1 / 3))
    if L**3 != X.shape[0] or X.shape[0] != X.shape[1]:
        raise ValueError(f"Shape {X.shape[:2]} is not a square of perfect cubes.")
    return X.reshape((L,) * 6 + X.shape[2:])


def volmat_to_vecmat(X):
    """
    Unroll volume matrices to vector matrices

    :param X: An L-by-L-by-L-by-L-by-L-by-L-by-... volume matrix.
    :return: An L**3-by-L**3-by-... matrix.
    """
    L = X.shape[0]
    return X.reshape(L**3, L**3, *X.shape[6:])


def anorm(x, axes=None):
    """
    Calculate array norm along given axes

    :param x: An array of arbitrary size and shape.
    :param axes: The axis along which to compute the norm. If None, the norm is calculated along all axes.
    :return: The Euclidean (l^2) norm of x along specified axes.
    """
    if axes is None:
        return np.linalg.norm(x)
    axes = tuple(axes)  # Unrolls any generators, like `range`.
    return np.sqrt(np.real(ainner(x, x, axes=axes)))


def ainner(x, y, axes=None):
    """
    Calculate array inner product along given axes

    :param x: An array of arbitrary shape
    :param y: An array of same shape as x
    :param axes: The axis along which to compute the inner product. If None, the product is calculated along all axes.
    :return: The inner product of x and y along the specified axes.
    """
    if x.shape != y.shape:
        raise ValueError("The shapes of the inputs have to match")

    if axes is not None:
        axes = tuple(axes)

    return np.sum(x * np.conj(y), axis=axes)


def acorr(x, y, axes=None):
    """
    Calculate array correlation along given axes

    :param x: An array of arbitrary shape
    :param y: An array of same shape as x
    :param axes: The axis along which to compute the correlation. If None, the correlation is calculated along all axes.
    :return: The correlation of x and y along specified axes.
    """
    if axes is None:
        axes = range(x.ndim)
    axes = tuple(axes)
    return ainner(x, y, axes) / (anorm(x, axes) * anorm(y, axes))
