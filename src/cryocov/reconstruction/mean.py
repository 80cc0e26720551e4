import logging

import numpy as np

from cryocov.exceptions import ConfigurationError, NonConvergence, ShapeError
from cryocov.nufft import anufft
from cryocov.numeric import fft
from cryocov.optimization import conj_grad
from cryocov.reconstruction.estimator import Estimator
from cryocov.reconstruction.kernel import FourierKernel, kernel_operator
from cryocov.utils import rotated_grids, tqdm

logger = logging.getLogger(__name__)


def _check_images(src):
    if src.n < 1:
        raise ConfigurationError(f"{src} holds no images to estimate from.")


def src_mean_kernel(src, batch_size=512, dtype=None):
    """
    Compute the mean least-squares estimator kernel of a source.

    Convolving an L-by-L-by-L volume with this kernel equals projecting and
    back-projecting it along every viewing direction of `src`, averaged over
    all `n` images.

    :param src: An `ImageSource` exposing `rotations`.
    :param batch_size: Number of rotations processed per NUFFT.
    :param dtype: Precision of the kernel, defaults to `src.dtype`.
    :return: A `FourierKernel` of side 2*L.
    """
    _check_images(src)

    L = src.L
    _2L = 2 * L
    dtype = np.dtype(dtype or src.dtype)
    backend = getattr(src, "backend", None)

    weights = np.ones((L, L), dtype=dtype)
    if L % 2 == 0:
        weights[0, :] = 0
        weights[:, 0] = 0
    weights = weights.flatten()

    # Note, because we're iteratively summing it is critical we zero this array.
    kernel = np.zeros((_2L, _2L, _2L), dtype=dtype)

    for i in tqdm(range(0, src.n, batch_size), desc="Mean kernel"):
        rotations = src.rotations[i : i + batch_size]
        pts_rot = rotated_grids(L, rotations).reshape((3, -1))
        batch_weights = np.tile(weights, len(rotations))

        kernel += anufft(
            batch_weights, pts_rot, (_2L, _2L, _2L), real=True, dtype=dtype, backend=backend
        ).astype(dtype, copy=False)

    kernel /= src.n * L**2

    # Ensure symmetric kernel
    kernel[0, :, :] = 0
    kernel[:, 0, :] = 0
    kernel[:, :, 0] = 0

    logger.info("Computing non-centered Fourier Transform")
    kernel = fft.mdim_ifftshift(kernel, range(0, 3))
    kernel_f = np.real(fft.fftn(kernel, axes=(0, 1, 2)))

    return FourierKernel(kernel_f.astype(dtype, copy=False))


def src_mean_backward(src, basis, batch_size=512):
    """
    Apply adjoint mapping to source

    :param src: An `ImageSource`.
    :param basis: The basis in which to express the result.
    :param batch_size: Number of images loaded at once.
    :return: The adjoint mapping applied to the images, averaged over the whole dataset and expressed
        as coefficients of `basis`.
    """
    _check_images(src)

    vol_rhs = np.zeros((src.L,) * 3, dtype=src.dtype)

    for i in tqdm(range(0, src.n, batch_size), desc="Mean backward"):
        im = src.images(i, batch_size)
        vol_rhs += src.im_backward(im, i).astype(src.dtype, copy=False)

    vol_rhs /= src.n

    res = basis.evaluate_t(vol_rhs)
    logger.info(f"Determined adjoint mappings. Shape = {res.shape}")

    return res


def conj_grad_mean(
    mean_kernel, b_coef, basis, precond_kernel=None, regularizer=0, **cg_opt
):
    """
    Solve for the mean volume coefficients with conjugate gradient.

    :param mean_kernel: `FourierKernel` of the projection normal operator.
    :param b_coef: Basis coefficients of the averaged back-projected images.
    :param basis: The basis of `b_coef`.
    :param precond_kernel: Optional `FourierKernel` approximating
        `mean_kernel`. Its reciprocal is used as preconditioner.
    :param regularizer: Non-negative weight added to both kernels.
    :param cg_opt: Options for `conj_grad`, such as `max_iter` or
        `rel_tolerance`. An initial guess may be passed as `x0`.
    :return: A tuple of the estimated coefficients and the CG info dictionary.
    """
    b_coef = np.asarray(b_coef)
    if b_coef.ndim != 1:
        raise ShapeError(f"b_coef must be a vector, received shape {b_coef.shape}.")
    if basis.count != b_coef.shape[0]:
        raise ShapeError(
            f"b_coef has {b_coef.shape[0]} coefficients but basis count is {basis.count}."
        )
    if regularizer < 0:
        raise ConfigurationError(f"Regularizer must be non-negative, received {regularizer}.")

    kernel = mean_kernel
    if regularizer > 0:
        kernel = kernel + regularizer

    operator = kernel_operator(kernel, basis)

    if precond_kernel is not None:
        if regularizer > 0:
            precond_kernel = precond_kernel + regularizer
        cg_opt["preconditioner"] = kernel_operator(precond_kernel.reciprocal(), basis)

    init = {"x": cg_opt.pop("x0", None)}

    x, _, info = conj_grad(operator, b_coef, cg_opt, init)

    return x, info


class MeanEstimator(Estimator):
    """
    Least-squares estimator of the mean volume of a source.
    """

    def compute_kernel(self):
        """
        Compute and return `FourierKernel` instance.
        """
        return src_mean_kernel(self.src, self.batch_size, self.dtype)

    def src_backward(self):
        """
        :return: Basis coefficients of the back-projected images, averaged over the source.
        """
        return src_mean_backward(self.src, self.basis, self.batch_size)

    def _iter_callback(self, info):
        logger.info(f"[Iter {info['iter'][-1]}]: Residual {info['res'][-1]}")

    def conj_grad(self, b_coef, x0=None):
        """
        Solve the mean normal equations for the right hand side `b_coef`.

        :param b_coef: Basis coefficients of the averaged back-projected images.
        :param x0: Optional initial guess.
        :return: Estimated basis coefficients. CG diagnostics are stored in `cg_info`.
        """
        x, info = conj_grad_mean(
            self.kernel,
            b_coef,
            self.basis,
            precond_kernel=self.precond_kernel,
            regularizer=self.regularizer,
            max_iter=self.maxiter,
            rel_tolerance=self.tol,
            iter_callback=self._iter_callback,
            x0=x0,
        )
        self.cg_info = info

        if not info["converged"] and self.strict:
            raise NonConvergence(
                f"Conjugate gradient unable to converge after {info['iter'][-1]} iterations.",
                info=info,
            )

        return x
