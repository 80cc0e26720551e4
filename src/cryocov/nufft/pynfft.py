import numpy as np
from pynfft.nfft import NFFT

from cryocov.exceptions import ConfigurationError
from cryocov.nufft import Plan


def nextpow2(x):
    """
    Return the exponent of the smallest power of 2 not less than `x`.

    :param x: A positive number or array of numbers.
    :return: Integer exponent(s).
    """
    return np.ceil(np.log2(np.abs(x))).astype(int)


class PyNfftPlan(Plan):
    """
    NUFFT plan backed by the Chemnitz NFFT library through pynfft.

    NFFT expects frequencies in [-0.5, 0.5) and only supports even
    signal sizes.
    """

    backend = "pynfft"

    @staticmethod
    def epsilon_to_nfft_cutoff(epsilon):
        # NOTE: These are obtained empirically. Should have a theoretical derivation.
        rel_errs = [6e-2, 2e-3, 2e-5, 2e-7, 3e-9, 4e-11, 4e-13, 0]
        return list(
            filter(lambda i_err: i_err[1] < epsilon, enumerate(rel_errs, start=1))
        )[0][0]

    def _setup(self):
        if any(n % 2 for n in self.sz):
            raise ConfigurationError(
                f"pynfft backend requires even signal sizes, received {self.sz}."
            )

        self.cutoff = PyNfftPlan.epsilon_to_nfft_cutoff(self.epsilon)
        self.multi_bandwith = tuple(int(n) for n in 2 * 2 ** nextpow2(np.array(self.sz)))
        # Only these two flags are supported by the pynfft wrapper.
        self._flags = ("PRE_PHI_HUT", "PRE_PSI")

        self._plan = NFFT(
            N=self.sz,
            M=self.num_pts,
            n=self.multi_bandwith,
            m=self.cutoff,
            flags=self._flags,
        )

    def _set_points(self, fourier_pts):
        x = fourier_pts.T / (2 * np.pi)
        self._plan.x = np.mod(x + 0.5, 1.0) - 0.5
        self._plan.precompute()

    def _transform(self, signal):
        self._plan.f_hat = signal.astype(np.complex128)
        return self._plan.trafo().copy()

    def _adjoint(self, sig_f):
        self._plan.f = sig_f.astype(np.complex128)
        return self._plan.adjoint().copy()

    def _finalize(self):
        self._plan = None
