from unittest import TestCase

import numpy as np
from pytest import raises

from cryocov.numeric import fft_object

# Create test objects for each FFT library
test_objects = [fft_object("scipy"), fft_object("pyfftw")]


class FFTTestCase(TestCase):
    def setUp(self):
        self.rng = np.random.default_rng(0)

    def testFft(self):
        for fft in test_objects:
            for nworkers in (-1, 1, 2):
                a = self.rng.random(100)
                b = fft.fft(a, workers=nworkers)
                self.assertTrue(np.allclose(b, np.fft.fft(a)))
                c = fft.ifft(b, workers=nworkers)
                self.assertTrue(np.allclose(a, c))

    def testFft2(self):
        for fft in test_objects:
            for nworkers in (-1, 1, 2):
                a = self.rng.random((3, 20, 20))
                b = fft.fft2(a, workers=nworkers)
                self.assertTrue(np.allclose(b, np.fft.fft2(a)))
                c = fft.ifft2(b, workers=nworkers)
                self.assertTrue(np.allclose(a, c))

    def testFftn(self):
        for fft in test_objects:
            for nworkers in (-1, 1, 2):
                a = self.rng.random((16, 16, 16))
                b = fft.fftn(a, axes=(0, 1, 2), workers=nworkers)
                self.assertTrue(np.allclose(b, np.fft.fftn(a)))
                c = fft.ifftn(b, axes=(0, 1, 2), workers=nworkers)
                self.assertTrue(np.allclose(a, c))

    def testShift(self):
        for fft in test_objects:
            a = self.rng.random(101)
            b = fft.ifftshift(a)
            c = fft.fftshift(b)
            self.assertTrue(np.allclose(a, c))

    def testMdimShift(self):
        for fft in test_objects:
            a = self.rng.random((4, 5, 6))
            b = fft.mdim_ifftshift(a, [0, 2])
            self.assertTrue(np.allclose(b, np.fft.ifftshift(a, axes=(0, 2))))
            self.assertTrue(np.allclose(fft.mdim_fftshift(b, [0, 2]), a))
            self.assertTrue(np.allclose(fft.mdim_fftshift(a), np.fft.fftshift(a)))

    def testCenteredFft2(self):
        for fft in test_objects:
            for n in (8, 9):
                a = self.rng.random((n, n))
                b = fft.centered_fft2(a)
                # The zero frequency sits at index n // 2.
                self.assertTrue(np.isclose(b[n // 2, n // 2], np.sum(a)))
                c = fft.centered_ifft2(b)
                self.assertTrue(np.allclose(a, c))

    def testInvalid(self):
        with raises(RuntimeError, match=r".*Invalid selection.*"):
            fft_object("numpy")
