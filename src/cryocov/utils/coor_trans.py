"""
General purpose math functions, mostly geometric in nature.
"""

import numpy as np


def grid_1d(n, normalized=True, dtype=np.float64):
    """
    Generate one dimensional grid.

    Array index `i` holds the coordinate `i - n // 2`, so the origin sits at
    index `n // 2` for both even and odd `n`.

    :param n: the number of grid points.
    :param normalized: normalize the grid by `n / 2`, giving the range [-1, 1).
    :return: A dictionary with the rectangular coordinates of all grid points.
    """
    x = np.arange(-(n // 2), n - n // 2).astype(dtype)
    if normalized:
        x /= n / 2

    return {"x": x, "r": np.abs(x)}


def grid_2d(n, normalized=True, dtype=np.float64):
    """
    Generate two dimensional grid.

    :param n: the number of grid points in each dimension.
    :param normalized: normalize the grid in the range of [-1, 1) or not.
    :return: the rectangular and polar coordinates of all grid points,
        with `x` varying along the first axis.
    """
    grid = grid_1d(n, normalized=normalized, dtype=dtype)["x"]
    x, y = np.meshgrid(grid, grid, indexing="ij")

    return {"x": x, "y": y, "phi": np.arctan2(y, x), "r": np.hypot(x, y)}


def wrap_fourier_pts(fourier_pts):
    """
    Wrap frequencies into [-pi, pi).

    Signals in this package live on integer grids, so frequencies are only
    defined modulo 2*pi and wrapping leaves every transform unchanged.

    :param fourier_pts: Array of frequencies.
    :return: Array of the same shape with values in [-pi, pi).
    """
    return np.mod(fourier_pts + np.pi, 2 * np.pi) - np.pi


def rotated_grids(L, rot_matrices):
    """
    Generate rotated Fourier grids in 3D from rotation matrices

    The central slice of an `L`-by-`L` image is the plane spanned by the first
    two coordinate axes. Each rotation is applied to that plane.

    :param L: The resolution of the desired grids.
    :param rot_matrices: An array of size n-by-3-by-3 containing n rotation matrices.
    :return: A 3-by-n-by-L**2 array of rotated Fourier grids, with frequencies
        wrapped into [-pi, pi). The last axis follows the C order of an
        `L`-by-`L` image.
    """
    grid2d = grid_2d(L, dtype=rot_matrices.dtype)
    num_pts = L**2
    num_rots = rot_matrices.shape[0]

    pts = np.pi * np.vstack(
        [
            grid2d["x"].flatten(),
            grid2d["y"].flatten(),
            np.zeros(num_pts, dtype=rot_matrices.dtype),
        ]
    )
    pts_rot = np.zeros((3, num_rots, num_pts), dtype=rot_matrices.dtype)
    for i in range(num_rots):
        pts_rot[:, i, :] = rot_matrices[i, :, :] @ pts

    return wrap_fourier_pts(pts_rot)
