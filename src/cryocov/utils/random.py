"""
Utilities for generating random numbers.

Randomness is drawn from explicit `numpy.random.Generator` objects so that
callers own and pass around their random state.
"""

import numpy as np
from scipy.spatial.transform import Rotation


def default_rng(seed=None):
    """
    Return a `numpy.random.Generator`.

    :param seed: An integer seed, an existing Generator (returned as is),
        or None for fresh OS entropy.
    """
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)


def random_rotations(n, seed=None, dtype=np.float64):
    """
    Generate random 3D rotation matrices

    Angles are drawn as ZYZ Euler angles, uniform over the rotation group.

    :param n: The number of rotation matrices to generate.
    :param seed: Integer seed or `numpy.random.Generator`.
    :param dtype: Data type of the returned matrices.
    :return: An n-by-3-by-3 array of rotation matrices.
    """
    rng = default_rng(seed)
    angles = np.column_stack(
        (
            rng.random(n) * 2 * np.pi,
            np.arccos(2 * rng.random(n) - 1),
            rng.random(n) * 2 * np.pi,
        )
    )

    return Rotation.from_euler("ZYZ", angles).as_matrix().astype(dtype)
