import logging

import finufft
import numpy as np

from cryocov.nufft import Plan
from cryocov.utils import wrap_fourier_pts

logger = logging.getLogger(__name__)


class FinufftPlan(Plan):
    """
    NUFFT plan backed by the FINUFFT CPU library.

    Both directions are computed in double precision and cast back to the
    plan's working precision.
    """

    backend = "finufft"

    def _setup(self):
        opts = dict()
        if self.num_threads:
            opts["nthreads"] = self.num_threads

        self._transform_plan = finufft.Plan(
            nufft_type=2,
            n_modes_or_dim=self.sz,
            n_trans=1,
            eps=self.epsilon,
            isign=-1,
            dtype="complex128",
            **opts,
        )

        self._adjoint_plan = finufft.Plan(
            nufft_type=1,
            n_modes_or_dim=self.sz,
            n_trans=1,
            eps=self.epsilon,
            isign=1,
            dtype="complex128",
            **opts,
        )

    def _set_points(self, fourier_pts):
        # finufft keeps references to the point arrays.
        self._pts = np.ascontiguousarray(wrap_fourier_pts(fourier_pts))

        self._transform_plan.setpts(*self._pts)
        self._adjoint_plan.setpts(*self._pts)

    def _transform(self, signal):
        signal = np.ascontiguousarray(signal, dtype=np.complex128)
        return self._transform_plan.execute(signal)

    def _adjoint(self, sig_f):
        sig_f = np.ascontiguousarray(sig_f, dtype=np.complex128)
        return self._adjoint_plan.execute(sig_f)

    def _finalize(self):
        self._transform_plan = None
        self._adjoint_plan = None
        self._pts = None
