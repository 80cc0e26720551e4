import logging

import numpy as np

from cryocov import config
from cryocov.nufft import Plan
from cryocov.utils import grid_1d

logger = logging.getLogger(__name__)


class DirectPlan(Plan):
    """
    Exact non-uniform Fourier transform by explicit summation.

    The complex exponential is separable over the axes, so each batch of
    points costs one small phase matrix per axis and a single `einsum`.
    Points are processed in batches of `nufft.direct_batch_size` to bound
    memory. Computation always runs in double precision.
    """

    backend = "direct"

    def _setup(self):
        self.batch_size = config["nufft"]["direct_batch_size"].get(int)
        self._grids = [grid_1d(n, normalized=False)["x"] for n in self.sz]

        axes = "abc"[: self.dim]
        phases = ",".join(f"k{ax}" for ax in axes)
        self._transform_subscripts = f"{axes},{phases}->k"
        self._adjoint_subscripts = f"k,{phases}->{axes}"

    def _phases(self, start, stop, sign):
        return [
            np.exp(sign * 1j * np.outer(self.fourier_pts[d, start:stop], self._grids[d]))
            for d in range(self.dim)
        ]

    def _batches(self):
        for start in range(0, self.num_pts, self.batch_size):
            yield start, min(start + self.batch_size, self.num_pts)

    def _transform(self, signal):
        signal = signal.astype(np.complex128, copy=False)

        result = np.empty(self.num_pts, dtype=np.complex128)
        for start, stop in self._batches():
            result[start:stop] = np.einsum(
                self._transform_subscripts,
                signal,
                *self._phases(start, stop, -1),
                optimize=True,
            )

        return result

    def _adjoint(self, sig_f):
        sig_f = sig_f.astype(np.complex128, copy=False)

        result = np.zeros(self.sz, dtype=np.complex128)
        for start, stop in self._batches():
            result += np.einsum(
                self._adjoint_subscripts,
                sig_f[start:stop],
                *self._phases(start, stop, 1),
                optimize=True,
            )

        return result

    def _finalize(self):
        self._grids = None
