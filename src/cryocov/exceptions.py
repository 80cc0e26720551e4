import logging
import platform
import struct
import subprocess
import sys
import traceback


def handle_exception(exc_type, exc_value, exc_traceback):
    """
    Handle any top-level unhandled exception.
    Tries to gather and log additional context information,
    then re-raises.

    :param exc_type: Exception type object
    :param exc_value: Exception value object (an instance of type exc_type)
    :param exc_traceback: The Traceback object associated with exc_value
    :return: On return, useful diagnostic information has been logged, and the exception re-raised.
    """

    # Explicitly killing a run, just do it.
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return

    from cryocov.utils import get_full_version

    lines = list()

    lines.append(f"Application version: {get_full_version()}")
    lines.append(f"Platform: {platform.platform()}")
    lines.append(f"Python version: {sys.version}")
    lines.append(f'Python 32/64 bit: {8 * struct.calcsize("P")}')

    lines.append("pip freeze output:")
    try:
        lines.extend(
            subprocess.check_output(["pip", "freeze"], stderr=subprocess.STDOUT)
            .decode("utf8")
            .split("\n")
        )
    except Exception:  # nopep8  # noqa: E722
        pass

    # Walk the traceback (oldest call -> most recent call), capturing locals when possible.
    lines.append("Exception Details (most recent call last)")
    frame_generator = traceback.walk_tb(exc_traceback)

    try:
        stack_summary = traceback.StackSummary.extract(
            frame_generator, capture_locals=True
        )
    except Exception:  # nopep8  # noqa: E722
        stack_summary = traceback.StackSummary.extract(
            traceback.walk_tb(exc_traceback), capture_locals=False
        )

    for s in stack_summary.format():
        lines.extend(s.split("\n"))

    try:
        with open("cryocov.err.log", "w") as f:
            f.write("\n".join(lines) + "\n")
    except Exception:  # nopep8  # noqa: E722
        pass

    try:
        logging.critical(
            f"{exc_value}\nTraceback:\n"
            f'{"".join(traceback.format_tb(exc_traceback))}'
        )
        raise exc_value
    finally:
        del exc_value, exc_traceback


class CryocovException(Exception):
    pass


class ConfigurationError(CryocovException, ValueError):
    """Malformed plan or options, or inputs outside their valid domain."""


class ShapeError(ConfigurationError):
    """Array shapes that do not agree with a plan, basis or each other."""


class StateError(CryocovException, RuntimeError):
    """Operation invoked before its required setup, or setup repeated."""


class NonConvergence(CryocovException):
    """
    Iterative solver stopped at its iteration limit above tolerance.

    Solvers report this through their diagnostics; it is only raised when a
    caller asks for strict convergence.
    """

    def __init__(self, msg, info=None):
        super().__init__(msg)
        self.info = info
