from unittest import TestCase

import numpy as np
from pytest import raises

from cryocov import config
from cryocov.basis import DiracBasis3D
from cryocov.nufft import Plan, all_backends, check_backends
from cryocov.reconstruction import MeanEstimator
from cryocov.source import ArrayImageSource
from cryocov.utils import random_rotations

from ._config_util import config_override


class ConfigTest(TestCase):
    def testDefaults(self):
        self.assertEqual(config["version"].as_str(), "0.1.0")
        self.assertIn(config["common"]["fft"].as_str(), ["scipy", "pyfftw"])
        self.assertIn("direct", config["nufft"]["backends"].as_str_seq())
        self.assertEqual(config["nufft"]["epsilon"].as_number(), 1e-15)
        self.assertEqual(config["nufft"]["num_threads"].get(int), 0)
        self.assertEqual(config["mean"]["maxiter"].get(int), 50)
        self.assertEqual(config["covar"]["dtype"].as_str(), "float32")

    def testOverride(self):
        self.assertEqual(config["mean"]["maxiter"].get(int), 50)

        with config_override({"mean": {"maxiter": 7}}):
            # value overridden!
            self.assertEqual(config["mean"]["maxiter"].get(int), 7)
            # siblings are untouched
            self.assertEqual(config["mean"]["tol"].as_number(), 1e-5)

        # 'maxiter' reverts to its expected value here
        self.assertEqual(config["mean"]["maxiter"].get(int), 50)

    def testEstimatorDefaults(self):
        L, n = 4, 3
        src = ArrayImageSource(np.zeros((n, L, L)), random_rotations(n, seed=0))
        basis = DiracBasis3D(L, dtype=np.float64)

        with config_override({"mean": {"maxiter": 7, "tol": 1e-3, "regularizer": 0.5}}):
            estimator = MeanEstimator(src, basis)

        self.assertEqual(estimator.maxiter, 7)
        self.assertEqual(estimator.tol, 1e-3)
        self.assertEqual(estimator.regularizer, 0.5)

        # Explicit arguments win over configuration.
        estimator = MeanEstimator(src, basis, maxiter=3, tol=1e-2, regularizer=0)
        self.assertEqual(estimator.maxiter, 3)
        self.assertEqual(estimator.tol, 1e-2)
        self.assertEqual(estimator.regularizer, 0)

    def testNufftDefaults(self):
        with config_override({"nufft": {"epsilon": 1e-6}}):
            plan = Plan(8, num_pts=1, backend="direct")
        self.assertEqual(plan.epsilon, 1e-6)
        plan.finalize()

    def testBackendList(self):
        try:
            with config_override({"nufft": {"backends": ["direct"]}}):
                check_backends()
                self.assertEqual(all_backends(), ["direct"])

            with config_override({"nufft": {"backends": ["spam"]}}):
                with raises(RuntimeError, match=r"No usable NUFFT backend.*"):
                    check_backends()
        finally:
            # Restore the configured preference list.
            check_backends(raise_errors=False)
