import logging

import cupy as cp
import numpy as np
from cufinufft import Plan as cufPlan

from cryocov.nufft import Plan

logger = logging.getLogger(__name__)


class CufinufftPlan(Plan):
    """
    NUFFT plan backed by the CUDA FINUFFT library.

    Inputs are copied to the device in double precision, and results are
    copied back to host memory before returning.
    """

    backend = "cufinufft"

    def _setup(self):
        self._transform_plan = cufPlan(2, self.sz, 1, self.epsilon, -1, dtype="complex128")

        self.adjoint_opts = dict()
        if self.dim == 3:
            # Note this is an algorithmic implementation dictated by shmem.
            logger.info(
                "Converting cufinufft gpu_method=1 from default of 2 for 3D1 transform,"
                f" to support computation in double precision with tol={self.epsilon}."
            )
            self.adjoint_opts["gpu_method"] = 1

        self._adjoint_plan = cufPlan(
            1,
            self.sz,
            1,
            self.epsilon,
            1,
            dtype="complex128",
            **self.adjoint_opts,
        )

    def _set_points(self, fourier_pts):
        # Device arrays must outlive the plans that reference them.
        self._pts = [
            cp.ascontiguousarray(
                cp.mod(cp.asarray(row, dtype=np.float64) + cp.pi, 2 * cp.pi) - cp.pi
            )
            for row in fourier_pts
        ]

        self._transform_plan.setpts(*self._pts)
        self._adjoint_plan.setpts(*self._pts)

    def _transform(self, signal):
        signal = cp.asarray(signal, order="C", dtype=cp.complex128)
        return self._transform_plan.execute(signal).get()

    def _adjoint(self, sig_f):
        sig_f = cp.asarray(sig_f, order="C", dtype=cp.complex128)
        return self._adjoint_plan.execute(sig_f).get()

    def _finalize(self):
        self._transform_plan = None
        self._adjoint_plan = None
        self._pts = None
