import logging

import numpy as np

from cryocov.exceptions import ShapeError

logger = logging.getLogger(__name__)


def fill_struct(obj=None, att_vals=None):
    """
    Fill a dictionary with default values.

    If a dictionary is not given a new one will be created and filled.
    Keys already present in `obj` keep their value; missing keys are copied
    from `att_vals`.

    :param obj: Dictionary to be filled, or None.
    :param att_vals: Dictionary of default values.
    :return: The filled dictionary.
    """
    if obj is None:
        obj = {}
    if att_vals is None:
        return obj

    for key in att_vals.keys():
        if key not in obj.keys():
            obj[key] = att_vals[key]

    return obj


def as_operator(op):
    """
    Return a callable `x -> Ax` from a callable or an object exposing `matvec`,
    such as a `scipy.sparse.linalg.LinearOperator`.
    """
    if op is None:
        return None
    if hasattr(op, "matvec"):
        return op.matvec
    if callable(op):
        return op
    raise TypeError(f"Cannot use {type(op)} as a linear operator.")


def _objective(x, a_x, b):
    return np.real(np.vdot(x, a_x)) - 2 * np.real(np.vdot(b, x))


def conj_grad(a_fun, b, cg_opt=None, init=None):
    """
    Conjugate Gradient method to solve the linear system Ax = b.

    :param a_fun: The linear operator x -> Ax, either a callable taking and
        returning a vector of length p or an object with a `matvec` method.
        The operator must be symmetric positive (semi-)definite.
    :param b: The right hand side of Ax = b, a vector of length p.
    :param cg_opt: The parameters for the conjugate gradient method, including:
            max_iter: Maximum number of iterations (default 50).
            verbose: Whether progress should be logged at INFO level (default 0).
            iter_callback: If not None, a function called at the end of every
                iteration with the info dictionary as single argument
                (default None).
            preconditioner: The preconditioner x -> Px applied in every
                iteration, a callable or an object with `matvec`
                (default identity).
            rel_tolerance: The relative residual norm at which to stop the
                algorithm, even if it has not yet reached the maximum number
                of iterations (default 1e-15).
            store_iterates: Whether to store each intermediate result in the
                info dictionary under the x, p and r fields. Since this may
                require a large amount of memory, this is not recommended
                (default False).
    :param init: A dictionary specifying the starting point of the algorithm.
            This can contain values of x or p that will be used for
            initialization (default empty).
    :return: A tuple (x, obj, info) where
            x: The result of the conjugate gradient method after max_iter
                iterations or once the residual norm has decreased below
                rel_tolerance, relative to the norm of b.
            obj: The value of the objective function at the last iteration.
            info: A dictionary containing intermediate information obtained
            during each iteration:
            - iter: The iteration numbers.
            - res: The norms of the residual.
            - obj: The objective function values, x^T A x - 2 Re b^T x.
            - converged: Whether the tolerance was met.
            - x, r, p (for store_iterates true): The iterates.
    """

    def identity(input_x):
        return input_x

    default_opt = {
        "verbose": 0,
        "max_iter": 50,
        "iter_callback": None,
        "store_iterates": False,
        "rel_tolerance": 1e-15,
        "preconditioner": identity,
    }

    cg_opt = fill_struct(dict(cg_opt or {}), default_opt)
    a_fun = as_operator(a_fun)
    precond = as_operator(cg_opt["preconditioner"]) or identity

    b = np.asarray(b)
    if b.ndim != 1:
        raise ShapeError(f"Right hand side must be a vector, received shape {b.shape}.")

    default_init = {"x": None, "p": None}
    init = fill_struct(dict(init or {}), default_init)
    if init["x"] is None:
        x = np.zeros(b.shape, dtype=b.dtype)
    else:
        x = np.array(init["x"], dtype=np.result_type(init["x"], b))
        if x.shape != b.shape:
            raise ShapeError(
                f"Initial guess shape {x.shape} does not match right hand side {b.shape}."
            )

    b_norm = np.linalg.norm(b)
    r = b.copy()

    # Need the copy call to ensure that s and r are not identical in the case
    # of an identity preconditioner.
    s = precond(r.copy())

    if np.any(x != 0):
        if cg_opt["verbose"]:
            logger.info("[CG] Calculating initial residual")
        a_x = a_fun(x)
        r = r - a_x
        s = precond(r.copy())
    else:
        a_x = np.zeros(x.shape, dtype=b.dtype)

    obj = _objective(x, a_x, b)

    if init["p"] is None:
        p = s.copy()
    else:
        p = np.array(init["p"])

    res = np.linalg.norm(r)
    info = {"iter": [0], "res": [res], "obj": [obj], "converged": False}
    if cg_opt["store_iterates"]:
        info = fill_struct(info, att_vals={"x": [x.copy()], "r": [r.copy()], "p": [p.copy()]})

    if cg_opt["verbose"]:
        logger.info(f"[CG] Initialized. Residual: {res}. Objective: {obj}")

    if b_norm == 0:
        # Zero solves a zero right hand side, whatever the initial guess.
        x = np.zeros_like(x)
        info["converged"] = True
        return x, 0.0, info

    if res < b_norm * cg_opt["rel_tolerance"]:
        info["converged"] = True
        return x, obj, info

    for i in range(1, cg_opt["max_iter"] + 1):
        if cg_opt["verbose"]:
            logger.info("[CG] Applying matrix & preconditioner")

        a_p = a_fun(p)
        old_gamma = np.real(np.vdot(r, s))
        curvature = np.real(np.vdot(p, a_p))
        if curvature <= 0:
            logger.warning(
                f"[CG] Non-positive curvature {curvature} encountered, stopping early."
            )
            break

        alpha = old_gamma / curvature
        x = x + alpha * p
        a_x = a_x + alpha * a_p
        r = r - alpha * a_p

        obj = _objective(x, a_x, b)
        res = np.linalg.norm(r)
        info["iter"].append(i)
        info["res"].append(res)
        info["obj"].append(obj)

        converged = res < b_norm * cg_opt["rel_tolerance"]
        if not converged:
            s = precond(r.copy())
            new_gamma = np.real(np.vdot(r, s))
            beta = new_gamma / old_gamma
            p = s + beta * p

        if cg_opt["store_iterates"]:
            info["x"].append(x.copy())
            info["r"].append(r.copy())
            info["p"].append(p.copy())

        if cg_opt["verbose"]:
            logger.info(f"[CG] Iteration {i}. Residual: {res}. Objective: {obj}")

        if cg_opt["iter_callback"] is not None:
            cg_opt["iter_callback"](info)

        if converged:
            info["converged"] = True
            break

    if not info["converged"]:
        logger.warning(
            "[CG] Conjugate gradient did not converge,"
            f" relative residual {res / b_norm}."
        )

    return x, obj, info
