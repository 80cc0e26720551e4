import numpy as np
import pytest

from cryocov.exceptions import ConfigurationError
from cryocov.utils import eval_vol, eval_volmat


@pytest.fixture
def rng():
    return np.random.default_rng(0)


def test_eval_vol_exact(rng):
    vol = rng.random((4, 4, 4))
    metrics = eval_vol(vol, vol.copy())

    assert np.isclose(metrics["err"], 0)
    assert np.isclose(metrics["rel_err"], 0)
    assert np.isclose(metrics["corr"], 1)


def test_eval_vol(rng):
    vol_true = rng.random((4, 4, 4))
    vol_est = 2 * vol_true

    metrics = eval_vol(vol_true, vol_est)

    assert np.isclose(metrics["err"], np.linalg.norm(vol_true))
    assert np.isclose(metrics["rel_err"], 1)
    # Correlation ignores scale.
    assert np.isclose(metrics["corr"], 1)

    metrics = eval_vol(vol_true, -vol_true)
    assert np.isclose(metrics["rel_err"], 2)
    assert np.isclose(metrics["corr"], -1)


def test_eval_vol_stack(rng):
    vol_true = rng.random((4, 4, 4, 3))
    vol_est = vol_true + 0.1 * rng.random((4, 4, 4, 3))

    metrics = eval_vol(vol_true, vol_est)

    assert metrics["err"].shape == (3,)
    for k in range(3):
        single = eval_vol(vol_true[..., k], vol_est[..., k])
        assert np.isclose(metrics["err"][k], single["err"])
        assert np.isclose(metrics["rel_err"][k], single["rel_err"])
        assert np.isclose(metrics["corr"][k], single["corr"])


def test_eval_volmat(rng):
    a = rng.random((3, 3, 3))
    volmat_true = np.multiply.outer(a, a)
    volmat_est = volmat_true + 0.01 * rng.random((3,) * 6)

    metrics = eval_volmat(volmat_true, volmat_est)

    diff = (volmat_true - volmat_est).reshape(27, 27)
    assert np.isclose(metrics["err"], np.linalg.norm(diff))
    assert np.isclose(metrics["rel_err"], metrics["err"] / np.linalg.norm(volmat_true))
    assert 0 < metrics["corr"] <= 1


def test_eval_scale_invariance(rng):
    vol_true = rng.random((4, 4, 4))
    vol_est = vol_true + 0.1 * rng.standard_normal((4, 4, 4))
    alpha = 3.7

    metrics = eval_vol(vol_true, vol_est)
    scaled = eval_vol(alpha * vol_true, alpha * vol_est)

    assert np.isclose(scaled["err"], alpha * metrics["err"])
    assert np.isclose(scaled["rel_err"], metrics["rel_err"])
    assert np.isclose(scaled["corr"], metrics["corr"])


def test_eval_swap(rng):
    vol_true = rng.random((4, 4, 4))
    vol_est = 2 * vol_true + 0.1 * rng.standard_normal((4, 4, 4))

    metrics = eval_vol(vol_true, vol_est)
    swapped = eval_vol(vol_est, vol_true)

    # The error is relative to the first argument only.
    assert np.isclose(swapped["err"], metrics["err"])
    assert not np.isclose(swapped["rel_err"], metrics["rel_err"])
    assert np.isclose(swapped["corr"], metrics["corr"])


def test_eval_errors(rng):
    with pytest.raises(ConfigurationError, match=r".*shapes must match.*"):
        eval_vol(rng.random((4, 4, 4)), rng.random((4, 4, 5)))

    with pytest.raises(ConfigurationError, match=r".*at least 6 dimensions.*"):
        eval_volmat(rng.random((4, 4, 4)), rng.random((4, 4, 4)))
