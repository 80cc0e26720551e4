import logging
from unittest import TestCase

import numpy as np
from pytest import raises

from cryocov.basis import DiracBasis3D
from cryocov.exceptions import ConfigurationError, ShapeError
from cryocov.reconstruction import (
    CovarianceBackProjector,
    src_covar_backward,
    src_mean_kernel,
)
from cryocov.source import ArrayImageSource
from cryocov.utils import random_rotations, vol_to_vec, volmat_to_vecmat

logger = logging.getLogger(__name__)


class CovarianceBackwardTestCase(TestCase):
    @classmethod
    def setUpClass(cls):
        cls.L = L = 4
        cls.n = n = 10
        cls.dtype = np.float64

        rng = np.random.default_rng(0)
        rots = random_rotations(n, seed=0)
        cls.src = ArrayImageSource(rng.standard_normal((n, L, L)), rots, backend="direct")
        cls.mean_vol = rng.standard_normal((L, L, L))
        cls.mean_kernel = src_mean_kernel(cls.src, batch_size=n)

    def _direct(self):
        """Accumulate the outer products one image at a time."""
        L, n = self.L, self.n
        centered = self.src.images(0, n) - self.src.vol_forward(self.mean_vol, 0, n)

        covar_b = np.zeros((L**3, L**3))
        for j in range(n):
            c = vol_to_vec(self.src.im_backward(centered[j], j))
            covar_b += np.outer(c, c)

        return covar_b / n

    def testBackwardNoNoise(self):
        covar_b = src_covar_backward(
            self.src, self.mean_vol, 0, batch_size=self.n, dtype=self.dtype
        )

        self.assertEqual(covar_b.shape, (self.L,) * 6)
        self.assertEqual(covar_b.dtype, self.dtype)
        np.testing.assert_allclose(volmat_to_vecmat(covar_b), self._direct(), atol=1e-12)

    def testBatchIndependence(self):
        full = src_covar_backward(
            self.src, self.mean_vol, 0.5, self.mean_kernel, batch_size=self.n, dtype=self.dtype
        )
        for batch_size in (1, 3, 7):
            covar_b = src_covar_backward(
                self.src,
                self.mean_vol,
                0.5,
                self.mean_kernel,
                batch_size=batch_size,
                dtype=self.dtype,
            )
            np.testing.assert_allclose(covar_b, full, atol=1e-12)

    def testNoiseTerm(self):
        noise_var = 0.3
        clean = src_covar_backward(
            self.src, self.mean_vol, 0, batch_size=self.n, dtype=self.dtype
        )
        debiased = src_covar_backward(
            self.src,
            self.mean_vol,
            noise_var,
            self.mean_kernel,
            batch_size=self.n,
            dtype=self.dtype,
        )

        np.testing.assert_allclose(
            debiased - clean, -noise_var * self.mean_kernel.toeplitz(self.L), atol=1e-12
        )

    def testNoiseKernelComputedWhenMissing(self):
        covar_b = src_covar_backward(
            self.src, self.mean_vol, 0.3, batch_size=self.n, dtype=self.dtype
        )
        expected = src_covar_backward(
            self.src, self.mean_vol, 0.3, self.mean_kernel, batch_size=self.n, dtype=self.dtype
        )

        np.testing.assert_allclose(covar_b, expected, atol=1e-12)

    def testSymmetric(self):
        covar_b = volmat_to_vecmat(
            src_covar_backward(
                self.src, self.mean_vol, 0.3, self.mean_kernel, dtype=self.dtype
            )
        )

        np.testing.assert_allclose(covar_b, covar_b.T, atol=1e-12)

    def testZeroImagesAboutMean(self):
        # Images that are exactly the projections of the mean carry no variance.
        images = self.src.vol_forward(self.mean_vol, 0, self.n)
        src = ArrayImageSource(images, self.src.rotations, backend="direct")

        covar_b = src_covar_backward(src, self.mean_vol, 0, dtype=self.dtype)

        np.testing.assert_allclose(covar_b, 0, atol=1e-12)

    def testConfigDtype(self):
        covar_b = src_covar_backward(self.src, self.mean_vol, 0)

        self.assertEqual(covar_b.dtype, np.float32)

    def testBadInputs(self):
        with raises(ConfigurationError):
            src_covar_backward(self.src, self.mean_vol, -1)
        with raises(ConfigurationError):
            src_covar_backward(self.src, self.mean_vol, 0, batch_size=0)
        with raises(ShapeError):
            src_covar_backward(self.src, self.mean_vol[:-1], 0)

    def testEmptySource(self):
        src = ArrayImageSource(np.zeros((0, self.L, self.L)), np.zeros((0, 3, 3)))

        with raises(ConfigurationError, match=r".*no images.*"):
            src_covar_backward(src, self.mean_vol, 0, self.mean_kernel)

    def testBackProjector(self):
        projector = CovarianceBackProjector(self.src, batch_size=3, dtype=self.dtype)
        covar_b = projector.backward(self.mean_vol, 0.3)

        self.assertIsNotNone(projector.mean_kernel)
        expected = src_covar_backward(
            self.src, self.mean_vol, 0.3, self.mean_kernel, dtype=self.dtype
        )
        np.testing.assert_allclose(covar_b, expected, atol=1e-10)

    def testBackwardCoef(self):
        basis = DiracBasis3D(self.L, dtype=self.dtype)
        projector = CovarianceBackProjector(
            self.src, mean_kernel=self.mean_kernel, dtype=self.dtype
        )

        coef = projector.backward_coef(self.mean_vol, 0.3, basis)
        covar_b = projector.backward(self.mean_vol, 0.3)

        self.assertEqual(coef.shape, (basis.count, basis.count))
        np.testing.assert_allclose(coef, volmat_to_vecmat(covar_b), atol=1e-12)
