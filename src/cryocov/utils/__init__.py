from .types import complex_type, real_type, utest_tolerance  # isort:skip
from .coor_trans import grid_1d, grid_2d, rotated_grids, wrap_fourier_pts
from .evaluation import eval_vol, eval_volmat
from .logging import (
    get_full_version,
    getConsoleLoggingLevel,
    setConsoleLoggingLevel,
    tqdm,
)
from .matrix import (
    acorr,
    ainner,
    anorm,
    vec_to_vol,
    vecmat_to_volmat,
    vol_to_vec,
    volmat_to_vecmat,
)
from .multiprocessing import openmp_num_threads, thread_budget
from .random import default_rng, random_rotations
