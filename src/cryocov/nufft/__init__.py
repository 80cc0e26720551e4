import logging
from collections import OrderedDict

import numpy as np

from cryocov import config
from cryocov.exceptions import ConfigurationError, ShapeError, StateError
from cryocov.utils import complex_type, real_type, thread_budget

logger = logging.getLogger(__name__)

# Every backend this package knows how to drive.
KNOWN_BACKENDS = ("finufft", "cufinufft", "pynfft", "direct")

# Cached Plan Class objects, indexed by backend string identifier, and ordered by preference (highest first)
# The values are either Plan subclasses (for working backends), or None (for non-working backends)
# Populated by 'check_backends()' when first needed.
backends = None
# Default preferred Plan subclass
default_plan_class = None

# Single precision rounding of pi must still pass the domain check.
_PI_TOL = np.pi * (1 + np.finfo(np.float32).eps)


def _try_backend(backend):
    """
    This function tries out a particular NUFFT backend by name.

    :param backend: A string representing the NUFFT backend we want to try. Currently one of:
        'direct'
            Exact summation in numpy, always usable. O(N*K), intended for small
            problems and as the reference other backends are tested against.
        'finufft'
            The Python wrapper for the FlatIron Institute's FINUFFT library
            https://github.com/flatironinstitute/finufft
        'cufinufft'
            The Python wrapper for the CUDA variant of FINUFFT library
            https://github.com/flatironinstitute/cufinufft
        'pynfft'
            The Python wrapper for the Chemnitz NFFT library
            https://www-user.tu-chemnitz.de/~potts/nfft/
    :return: The proper Plan-subclass if the backend is expected to work or None otherwise.

    Only imports are checked here, keeping discovery lightweight.
    """

    logger.info(f"Trying NUFFT backend {backend}")
    plan_class = None
    msg = None
    if backend == "direct":
        from cryocov.nufft.direct import DirectPlan

        plan_class = DirectPlan

    elif backend == "finufft":
        try:
            from finufft import Plan  # noqa: F401

            from cryocov.nufft.finufft import FinufftPlan

            plan_class = FinufftPlan
        except Exception as e:
            msg = str(e)

    elif backend == "cufinufft":
        try:
            from cryocov.nufft.cufinufft import CufinufftPlan

            plan_class = CufinufftPlan
        except Exception as e:
            msg = str(e)

    elif backend == "pynfft":
        try:
            from pynfft.nfft import NFFT  # noqa: F401

            from cryocov.nufft.pynfft import PyNfftPlan

            plan_class = PyNfftPlan
        except Exception as e:
            msg = str(e)

    else:
        msg = "unknown backend"

    if plan_class is None:
        logger.info(f"NUFFT backend {backend} not usable:\n\t{msg}")
    else:
        logger.info(f"NUFFT backend {backend} usable.")
    return plan_class


def check_backends(raise_errors=True):
    """
    Check all NUFFT backends in package configuration

    :param raise_errors: Whether to raise a RuntimeError if no backends detected.
    :return: On return, the global names 'backends'/'default_plan_class' have been populated
    """

    global backends, default_plan_class

    backends = OrderedDict(
        (k, _try_backend(k)) for k in config["nufft"]["backends"].as_str_seq()
    )
    try:
        default_backend = next(k for k, v in backends.items() if v is not None)
        logger.info(f"Selected NUFFT backend = {default_backend}.")
        default_plan_class = backends[default_backend]
    except StopIteration:
        msg = "No usable NUFFT backend detected."
        logger.error(msg)
        default_plan_class = None
        if raise_errors:
            raise RuntimeError(msg) from None


def all_backends():
    """
    Determine all available NUFFT backends

    :return: A list of strings representing available NUFFT backends
    """
    if backends is None:
        check_backends(raise_errors=False)
    return [k for k, v in backends.items() if v is not None]


def backend_available(backend):
    """
    Whether a particular NUFFT backend is available

    :param backend: String representing the NUFFT backend, e.g. 'finufft' or 'direct'
    :return: Boolean on whether the backend is available
    """
    if backends is None:
        check_backends(raise_errors=False)
    if backend in KNOWN_BACKENDS and backend not in backends:
        # Known but left out of the configured preference list.
        backends[backend] = _try_backend(backend)
    return backends.get(backend) is not None


def _plan_class(backend):
    if backend is not None:
        if backend not in KNOWN_BACKENDS:
            raise ConfigurationError(
                f"Unknown NUFFT backend {backend}, expected one of {KNOWN_BACKENDS}."
            )
        if backend_available(backend):
            return backends[backend]
        logger.warning(
            f"Requested NUFFT backend {backend} is unavailable, falling back to default."
        )

    if default_plan_class is None:
        check_backends(raise_errors=True)
    return default_plan_class


def _check_sz(sz):
    if isinstance(sz, (int, np.integer)):
        sz = (sz,)
    try:
        sz = tuple(sz)
    except TypeError:
        raise ConfigurationError(f"Plan size must be a sequence of integers, received {sz}.")

    if not 1 <= len(sz) <= 3:
        raise ConfigurationError(f"Plan size must have 1 to 3 dimensions, received {sz}.")
    for n in sz:
        if isinstance(n, bool) or not isinstance(n, (int, np.integer)) or n < 1:
            raise ConfigurationError(
                f"Plan size entries must be positive integers, received {sz}."
            )
    return tuple(int(n) for n in sz)


class Plan:
    """
    A plan for non-uniform FFT in 1D, 2D or 3D.

    Constructing a generic `Plan(...)` returns an instance of the subclass for
    the requested (or default) backend. A plan owns its backend resources
    until `finalize` is called; using the plan as a context manager finalizes
    it on every exit path.

    The forward transform of a signal `sig` is

        sig_f[k] = sum_x sig[x] * exp(-1j * <fourier_pts[:, k], x>)

    where `x` runs over the integer grid with array index `i` along an axis of
    length `N` at coordinate `i - N // 2`. The adjoint uses the opposite sign.
    """

    # Backend identifier, set by subclasses.
    backend = None

    def __new__(cls, *args, **kwargs):
        if cls is Plan:
            return super(Plan, cls).__new__(_plan_class(kwargs.get("backend")))
        # A Plan-subclass constructed directly invokes default behavior
        return super(Plan, cls).__new__(cls)

    def __init__(
        self,
        sz,
        num_pts=None,
        fourier_pts=None,
        epsilon=None,
        dtype=np.float64,
        num_threads=None,
        backend=None,
    ):
        """
        :param sz: A tuple (or integer) indicating the geometry of the signal.
        :param num_pts: Number of non-uniform frequency points. Inferred from
            `fourier_pts` when omitted.
        :param fourier_pts: Optional points in Fourier space, arranged as a
            dimension-by-K array with values in [-pi, pi]. When given they are
            passed to `set_points`.
        :param epsilon: The desired precision of the NUFFT. Defaults to the
            `nufft.epsilon` configuration value.
        :param dtype: Working precision, `np.float32` or `np.float64`.
        :param num_threads: Thread budget for each transform call. `0` leaves
            the process thread pools untouched. Defaults to `nufft.num_threads`.
        :param backend: Backend name, consumed by `__new__`.
        """
        self.sz = _check_sz(sz)
        self.dim = len(self.sz)

        if num_pts is None:
            if fourier_pts is None:
                raise ConfigurationError("Either `num_pts` or `fourier_pts` is required.")
            num_pts = np.shape(fourier_pts)[-1]
        if (
            isinstance(num_pts, bool)
            or not isinstance(num_pts, (int, np.integer))
            or num_pts < 0
        ):
            raise ConfigurationError(
                f"Number of points must be a non-negative integer, received {num_pts}."
            )
        self.num_pts = int(num_pts)

        try:
            self.dtype = real_type(dtype)
        except TypeError as e:
            raise ConfigurationError(str(e)) from e
        self.complex_dtype = complex_type(self.dtype)

        if epsilon is None:
            epsilon = config["nufft"]["epsilon"].as_number()
        if not epsilon > 0:
            raise ConfigurationError(f"Epsilon must be positive, received {epsilon}.")
        self.epsilon = max(epsilon, np.finfo(self.dtype).eps)
        if self.epsilon != epsilon:
            logger.debug(
                f"{self.__class__.__name__} adjusted eps={self.epsilon} from requested {epsilon}."
            )

        if num_threads is None:
            num_threads = config["nufft"]["num_threads"].get(int)
        if (
            isinstance(num_threads, bool)
            or not isinstance(num_threads, (int, np.integer))
            or num_threads < 0
        ):
            raise ConfigurationError(
                f"Thread budget must be a non-negative integer, received {num_threads}."
            )
        self.num_threads = int(num_threads)

        self.fourier_pts = None
        self._finalized = False

        self._setup()

        if fourier_pts is not None:
            try:
                self.set_points(fourier_pts)
            except Exception:
                self.finalize()
                raise

    def __repr__(self):
        return (
            f"{self.__class__.__name__}(sz={self.sz}, num_pts={self.num_pts},"
            f" epsilon={self.epsilon}, dtype={self.dtype})"
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        if not self._finalized:
            self.finalize()
        return False

    def _check_ready(self):
        if self._finalized:
            raise StateError(f"{self} has been finalized.")
        if self.fourier_pts is None:
            raise StateError("Plan has not been initialized with Fourier points.")

    def set_points(self, fourier_pts):
        """
        Set the non-uniform frequencies of this plan. Allowed once per plan.

        :param fourier_pts: The points in Fourier space where the Fourier
            transform is to be calculated, arranged as a dimension-by-K array.
            These need to be in the range [-pi, pi] in each dimension.
        :return: This plan.
        """
        if self._finalized:
            raise StateError(f"{self} has been finalized.")
        if self.fourier_pts is not None:
            raise StateError("Fourier points can only be set once per plan.")

        fourier_pts = np.asarray(fourier_pts)
        if fourier_pts.ndim != 2 or fourier_pts.shape[0] != self.dim:
            raise ShapeError(
                f"Fourier points must be of the form {self.dim}-by-K, received {fourier_pts.shape}."
            )
        if fourier_pts.shape[1] != self.num_pts:
            raise ShapeError(
                f"Plan expects {self.num_pts} Fourier points, received {fourier_pts.shape[1]}."
            )

        pts = np.ascontiguousarray(fourier_pts, dtype=np.float64)
        if not np.all(np.isfinite(pts)) or np.any(np.abs(pts) > _PI_TOL):
            raise ConfigurationError("Fourier points must lie in [-pi, pi].")

        if self.num_pts > 0:
            self._set_points(pts)
        self.fourier_pts = pts

        return self

    def transform(self, signal):
        """
        Compute the NUFFT transform using this plan instance.

        :param signal: Signal to be transformed, an array of shape `sz`.
        :return: Transformed signal of shape `(num_pts,)`.
        """
        self._check_ready()

        signal = np.asarray(signal)
        if signal.shape != self.sz:
            raise ShapeError(
                f"Signal to be transformed must have shape {self.sz}, received {signal.shape}."
            )

        if self.num_pts == 0:
            return np.zeros(0, dtype=self.complex_dtype)

        with thread_budget(self.num_threads):
            result = self._transform(signal)

        return np.asarray(result).reshape(self.num_pts).astype(
            self.complex_dtype, copy=False
        )

    def adjoint(self, sig_f):
        """
        Compute the NUFFT adjoint using this plan instance.

        :param sig_f: Non-uniform transform of a signal, shape `(num_pts,)`.
        :return: The adjoint transform of `sig_f`, an array of shape `sz`.
        """
        self._check_ready()

        sig_f = np.asarray(sig_f)
        if sig_f.shape != (self.num_pts,):
            raise ShapeError(
                f"Input must be of shape ({self.num_pts},), received {sig_f.shape}."
            )

        if self.num_pts == 0:
            return np.zeros(self.sz, dtype=self.complex_dtype)

        with thread_budget(self.num_threads):
            result = self._adjoint(sig_f)

        return np.asarray(result).reshape(self.sz).astype(self.complex_dtype, copy=False)

    def finalize(self):
        """
        Release backend resources. Must be called exactly once per plan.
        """
        if self._finalized:
            raise StateError(f"{self} has already been finalized.")
        try:
            self._finalize()
        finally:
            self._finalized = True

    @property
    def finalized(self):
        return self._finalized

    # Backend hooks.

    def _setup(self):
        pass

    def _set_points(self, fourier_pts):
        pass

    def _transform(self, signal):
        raise NotImplementedError("Subclasses must implement the _transform method")

    def _adjoint(self, sig_f):
        raise NotImplementedError("Subclasses must implement the _adjoint method")

    def _finalize(self):
        pass


def _signal_dtype(x):
    if x.dtype in (np.float32, np.complex64):
        return np.float32
    return np.float64


def nufft(sig, fourier_pts, real=False, **kwargs):
    """
    Wrapper for 1, 2, and 3 dimensional Non Uniform FFT

    Builds a plan for the shape of `sig`, transforms and finalizes it.

    :param sig: Array representing the signal in real space to be transformed.
    :param fourier_pts: The points in Fourier space where the Fourier transform is to be calculated,
        arranged as a dimension-by-K array. These need to be in the range [-pi, pi] in each dimension.
    :param real: Optional Bool indicating if you would like only the real components, Defaults False.
    :param kwargs: Further `Plan` arguments, such as `backend` or `epsilon`.
    :return: The Non Uniform FFT transform.
    """
    sig = np.asarray(sig)
    kwargs.setdefault("dtype", _signal_dtype(sig))

    with Plan(sig.shape, fourier_pts=fourier_pts, **kwargs) as plan:
        transform = plan.transform(sig)

    return np.real(transform) if real else transform


def anufft(sig_f, fourier_pts, sz, real=False, **kwargs):
    """
    Wrapper for 1, 2, and 3 dimensional Non Uniform FFT Adjoint.

    :param sig_f: Array representing the signal in Fourier space, length K.
    :param fourier_pts: The points in Fourier space, arranged as a dimension-by-K array.
        These need to be in the range [-pi, pi] in each dimension.
    :param sz: A tuple indicating the geometry of the output signal.
    :param real: Optional Bool indicating if you would like only the real components, Defaults False.
    :param kwargs: Further `Plan` arguments, such as `backend` or `epsilon`.
    :return: The Non Uniform FFT adjoint transform.
    """
    sig_f = np.asarray(sig_f)
    kwargs.setdefault("dtype", _signal_dtype(sig_f))

    with Plan(sz, fourier_pts=fourier_pts, **kwargs) as plan:
        adjoint = plan.adjoint(sig_f)

    return np.real(adjoint) if real else adjoint
