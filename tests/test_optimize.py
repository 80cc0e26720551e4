import logging
from unittest import TestCase

import numpy as np
from scipy.sparse.linalg import aslinearoperator

from cryocov.exceptions import ShapeError
from cryocov.optimization import conj_grad, fill_struct

logger = logging.getLogger(__name__)


class OptimizeTestCase(TestCase):
    def setUp(self):
        rng = np.random.default_rng(1618)
        # Generate real and complex A matrices from random numbers,
        # shifted to keep them well conditioned.
        rand_mat = rng.random((8, 8))
        self.A = rand_mat @ rand_mat.T + np.eye(8)
        rand_mat_comp = rng.random((8, 8)) + rng.random((8, 8)) * 1j
        self.A_comp = rand_mat_comp @ rand_mat_comp.T.conjugate() + np.eye(8)

        # Generate real and complex b vectors from random numbers
        self.b = rng.random(8)
        self.b_comp = rng.random(8) + rng.random(8) * 1j

    def tearDown(self):
        pass

    def testConjGradReal(self):
        x_est, _, info = conj_grad(lambda x: self.A @ x, self.b)
        self.assertTrue(np.allclose(self.A @ x_est, self.b))
        self.assertTrue(np.allclose(x_est, np.linalg.solve(self.A, self.b)))

    def testConjGradComplex(self):
        x_comp_est, _, _ = conj_grad(lambda x: self.A_comp @ x, self.b_comp)
        self.assertTrue(np.allclose(self.A_comp @ x_comp_est, self.b_comp))

    def testLinearOperator(self):
        x_est, _, info = conj_grad(
            aslinearoperator(self.A), self.b, {"rel_tolerance": 1e-12}
        )
        self.assertTrue(info["converged"])
        self.assertTrue(np.allclose(self.A @ x_est, self.b))

    def testPreconditioner(self):
        # Jacobi preconditioner
        diag = np.diag(self.A)
        cg_opt = {"preconditioner": lambda x: x / diag, "rel_tolerance": 1e-12}

        x_est, _, info = conj_grad(lambda x: self.A @ x, self.b, cg_opt)

        self.assertTrue(info["converged"])
        self.assertTrue(np.allclose(self.A @ x_est, self.b))

    def testExactPreconditionerOneStep(self):
        A_inv = aslinearoperator(np.linalg.inv(self.A))
        cg_opt = {"preconditioner": A_inv, "rel_tolerance": 1e-10}

        x_est, _, info = conj_grad(lambda x: self.A @ x, self.b, cg_opt)

        self.assertTrue(info["converged"])
        self.assertEqual(info["iter"][-1], 1)
        self.assertTrue(np.allclose(x_est, np.linalg.solve(self.A, self.b)))

    def testObjectiveDecreasing(self):
        _, obj, info = conj_grad(lambda x: self.A @ x, self.b, {"max_iter": 8})

        obj_hist = np.array(info["obj"])
        self.assertTrue(np.all(np.diff(obj_hist) <= 1e-12 * np.abs(obj_hist[0]) + 1e-12))
        self.assertEqual(obj, obj_hist[-1])
        # The minimum of x'Ax - 2b'x is -b'A^{-1}b.
        self.assertTrue(np.isclose(obj, -self.b @ np.linalg.solve(self.A, self.b)))

    def testZeroRhs(self):
        x_est, obj, info = conj_grad(lambda x: self.A @ x, np.zeros(8))

        self.assertTrue(info["converged"])
        self.assertEqual(info["iter"], [0])
        self.assertTrue(np.all(x_est == 0))
        self.assertEqual(obj, 0)

    def testMaxIterations(self):
        with self.assertLogs("cryocov.optimization.conj_grad", level="WARNING") as logs:
            x_est, _, info = conj_grad(
                lambda x: self.A @ x, self.b, {"max_iter": 2, "rel_tolerance": 1e-15}
            )

        self.assertFalse(info["converged"])
        self.assertEqual(info["iter"], [0, 1, 2])
        self.assertEqual(len(info["res"]), 3)
        self.assertTrue(any("did not converge" in line for line in logs.output))
        # A best effort iterate is still returned.
        self.assertTrue(info["obj"][-1] < info["obj"][0])
        self.assertTrue(np.any(x_est != 0))

    def testInitialGuess(self):
        x_true = np.linalg.solve(self.A, self.b)

        x_est, _, info = conj_grad(
            lambda x: self.A @ x, self.b, {"rel_tolerance": 1e-10}, init={"x": x_true}
        )

        self.assertTrue(info["converged"])
        self.assertEqual(info["iter"], [0])
        self.assertTrue(np.allclose(x_est, x_true))

    def testIterCallback(self):
        calls = []

        def callback(info):
            calls.append(info["iter"][-1])

        _, _, info = conj_grad(
            lambda x: self.A @ x, self.b, {"iter_callback": callback, "max_iter": 5}
        )

        self.assertEqual(calls, info["iter"][1:])

    def testStoreIterates(self):
        _, _, info = conj_grad(
            lambda x: self.A @ x, self.b, {"store_iterates": True, "max_iter": 3}
        )

        self.assertEqual(len(info["x"]), len(info["iter"]))
        self.assertEqual(len(info["r"]), len(info["iter"]))
        self.assertEqual(len(info["p"]), len(info["iter"]))
        for x, r in zip(info["x"], info["r"]):
            self.assertTrue(np.allclose(self.b - self.A @ x, r))

    def testInputsUnchanged(self):
        b = self.b.copy()
        x0 = np.ones(8)
        cg_opt = {"max_iter": 3}

        conj_grad(lambda x: self.A @ x, b, cg_opt, init={"x": x0})

        self.assertTrue(np.all(b == self.b))
        self.assertTrue(np.all(x0 == 1))
        self.assertEqual(cg_opt, {"max_iter": 3})

    def testResidualDecreasing(self):
        _, _, info = conj_grad(lambda x: self.A @ x, self.b, {"rel_tolerance": 1e-10})

        res = np.array(info["res"])
        self.assertTrue(info["converged"])
        self.assertLess(res[-1], 1e-10 * res[0])
        # CG residuals need not fall at every step, but their trend does.
        slope = np.polyfit(np.arange(len(res)), np.log(res), 1)[0]
        self.assertLess(slope, 0)
        self.assertTrue(np.all(res[1:] < 10 * res[0]))

    def testMatrixRhs(self):
        with self.assertRaises(ShapeError):
            conj_grad(lambda x: self.A @ x, np.ones((8, 2)))

    def testInitialGuessShape(self):
        with self.assertRaises(ShapeError):
            conj_grad(lambda x: self.A @ x, self.b, init={"x": np.zeros(7)})

    def testFillStruct(self):
        filled = fill_struct({"a": 1}, {"a": 2, "b": 3})
        self.assertEqual(filled, {"a": 1, "b": 3})
        self.assertEqual(fill_struct(None, {"c": 4}), {"c": 4})
