"""
Miscellaneous Utilities that relate to logging.
"""

import logging
import os.path
import subprocess

import tqdm as _tqdm

from cryocov import config

logger = logging.getLogger(__name__)

LOGGING_LEVEL_NAMES = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def get_full_version():
    """
    Get as much version information as we can, including git info (if applicable)
    This method should never raise exceptions!

    :return: A version number in the form:
        <maj>.<min>.<bld>
            If we're running as a package distributed through setuptools
        <maj>.<min>.<bld>.<rev>
            If we're running as a 'regular' python source folder, possibly locally modified

            <rev> is one of:
                'src': The package is running as a source folder
                <git_tag> or <git_rev> or <git_rev>-dirty: A git tag or commit revision, possibly followed by a suffix
                    '-dirty' if source is modified locally
                'x':   The revision cannot be determined

    """
    import cryocov

    full_version = cryocov.__version__
    rev = None
    try:
        path = cryocov.__path__[0]
        if os.path.isdir(path):
            try:
                rev = (
                    subprocess.check_output(
                        ["git", "describe", "--tags", "--always", "--dirty"],
                        stderr=subprocess.STDOUT,
                        cwd=path,
                    )
                    .decode("utf-8")
                    .strip()
                )
            except (FileNotFoundError, subprocess.CalledProcessError):
                # no git or not a git repo? assume 'src'
                rev = "src"
    except Exception:  # nopep8  # noqa: E722
        rev = "x"

    if rev is not None:
        full_version += f".{rev}"

    return full_version


def _tqdm_disabled():
    return config["logging"]["tqdm_disable"].get(bool) or (
        getConsoleLoggingLevel() not in ["DEBUG", "INFO"]
    )


def tqdm(*args, **kwargs):
    """
    Wraps `tqdm.tqdm`, applying package configuration.

    Setting `cryocov.config['logging']['tqdm_disable']` true/false
    will disable/enable tqdm progress bars.
    """
    return _tqdm.tqdm(*args, **kwargs, disable=_tqdm_disabled())


def setConsoleLoggingLevel(level_name):
    """
    Dynamically sets the console logging level by setting the level of the root logger's StreamHandler to `level_name`.
    Note this will supersede the `logging.console_level` option stored in the package configuration.

    :param level_name: One of "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL".
    """
    if level_name not in LOGGING_LEVEL_NAMES:
        raise ValueError(
            f"{level_name} not a recognized logging level. Must be one of {LOGGING_LEVEL_NAMES}"
        )
    # handler list is ordered according to logging.conf
    stream_handler = logging.getLogger().handlers[0]
    stream_handler.setLevel(getattr(logging, level_name))


def getConsoleLoggingLevel():
    """
    Returns the Python logging level of the root logger's StreamHandler, i.e. console output.

    :return: The current console logging level name as a string.
    """
    handlers = logging.getLogger().handlers
    if not handlers:
        return logging.getLevelName(logging.getLogger().level)
    # handler list is ordered according to logging.conf
    return logging.getLevelName(handlers[0].level)
