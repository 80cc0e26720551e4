from .kernel import FourierKernel, Kernel, apply_kernel, kernel_operator  # isort:skip
from .estimator import Estimator  # isort:skip
from .covar import CovarianceBackProjector, src_covar_backward
from .mean import MeanEstimator, conj_grad_mean, src_mean_backward, src_mean_kernel
