import logging

from cryocov import config
from cryocov.exceptions import ConfigurationError
from cryocov.reconstruction.kernel import apply_kernel

logger = logging.getLogger(__name__)


class Estimator:
    def __init__(
        self,
        src,
        basis,
        batch_size=512,
        preconditioner="circulant",
        regularizer=None,
        maxiter=None,
        tol=None,
        strict=False,
    ):
        """
        An object representing a 2*L-by-2*L-by-2*L array containing the non-centered Fourier transform of the mean
        least-squares estimator kernel.
        Convolving a volume with this kernel is equal to projecting and backproject-ing that volume in each of the
        projection directions and averaging over the whole dataset.
        Note that this is a non-centered Fourier transform, so the zero frequency is found at index 0.

        :param src: `ImageSource` to be used for estimation.
        :param basis: 3D Basis to be used during estimation.
        :param batch_size: Optional batch size of images drawn from
            `src` during back projection and kernel estimation steps.
        :param preconditioner: Optional kernel preconditioner (`string`).
            Currently supported options are "circulant" or None.
        :param regularizer: Non-negative Tikhonov weight added to the kernel.
            Defaults to the `mean.regularizer` configuration value.
        :param maxiter: Maximum number of CG iterations.
            Defaults to the `mean.maxiter` configuration value.
        :param tol: Relative residual tolerance of CG.
            Defaults to the `mean.tol` configuration value.
        :param strict: Raise `NonConvergence` when CG stops above tolerance,
            instead of logging a warning.
        """

        self.src = src
        self.basis = basis
        self.dtype = self.src.dtype

        if not batch_size > 0:
            raise ConfigurationError(f"`batch_size` should be positive, received {batch_size}.")
        self.batch_size = int(batch_size)

        if preconditioner is not None and not isinstance(preconditioner, str):
            raise ConfigurationError(
                f"Preconditioner must be a string or None, received {preconditioner!r}."
            )
        if not preconditioner or preconditioner.lower() == "none":
            # Resolve None and string nones to None
            preconditioner = None
        elif preconditioner not in ["circulant"]:
            raise ConfigurationError(
                f"Supplied preconditioner {preconditioner} is not supported."
            )
        self.preconditioner = preconditioner

        if regularizer is None:
            regularizer = config["mean"]["regularizer"].as_number()
        if regularizer < 0:
            raise ConfigurationError(f"`regularizer` should be non-negative, received {regularizer}.")
        self.regularizer = regularizer

        if maxiter is None:
            maxiter = config["mean"]["maxiter"].get(int)
        try:
            maxiter = int(maxiter)
        except (TypeError, ValueError):
            # Sentinel value to emit a more descriptive message below.
            maxiter = -1
        if not maxiter > 0:
            raise ConfigurationError("`maxiter` should be a positive integer.")
        self.maxiter = maxiter

        if tol is None:
            tol = config["mean"]["tol"].as_number()
        if not tol > 0:
            raise ConfigurationError(f"`tol` should be positive, received {tol}.")
        self.tol = tol

        self.strict = strict

        # dtype configuration
        if not self.dtype == self.basis.dtype:
            logger.warning(
                f"Inconsistent types in {self.dtype} Estimator."
                f" basis: {self.basis.dtype}"
            )

        if src.L != basis.nres or basis.ndim != 3:
            raise ConfigurationError(
                "Currently require 2D source and 3D volume resolution to be the same."
                f" Given src.L={src.L} != {basis.nres}"
            )

        self.cg_info = None

    def __getattr__(self, name):
        """Lazy attributes instantiated on first-access"""

        if name == "kernel":
            logger.info("Computing kernel")
            kernel = self.kernel = self.compute_kernel()
            return kernel

        elif name == "precond_kernel":
            if self.preconditioner == "circulant":
                logger.info("Computing Preconditioner kernel")
                precond_kernel = self.precond_kernel = self.kernel.circularize()
            else:
                precond_kernel = self.precond_kernel = None
            return precond_kernel

        else:
            raise AttributeError(name)

    def compute_kernel(self):
        raise NotImplementedError("Subclasses must implement the compute_kernel method")

    def src_backward(self):
        raise NotImplementedError("Subclasses must implement the src_backward method")

    def conj_grad(self, b_coef, x0=None):
        raise NotImplementedError("Subclasses must implement the conj_grad method")

    def estimate(self, b_coef=None, x0=None):
        """Return an estimate as an L-by-L-by-L volume."""
        if b_coef is None:
            b_coef = self.src_backward()
        est_coef = self.conj_grad(b_coef, x0=x0)
        est = self.basis.evaluate(est_coef)

        return est

    def apply_kernel(self, vol_coef, kernel=None):
        """
        Applies the kernel represented by convolution

        :param vol_coef: The volume to be convolved, stored in the basis coefficients.
        :param kernel: a Kernel object. If None, the kernel for this Estimator is used.
        :return: The result of evaluating `vol_coef` in the given basis, convolving with the kernel given by
            kernel, and backprojecting into the basis.
        """
        if kernel is None:
            kernel = self.kernel

        return apply_kernel(vol_coef, kernel, self.basis)
