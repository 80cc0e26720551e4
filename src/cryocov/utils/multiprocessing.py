import logging
from contextlib import contextmanager

from threadpoolctl import threadpool_info, threadpool_limits

logger = logging.getLogger(__name__)


@contextmanager
def thread_budget(num_threads):
    """
    Limit the process wide OpenMP thread pool for the duration of a block.

    The previous limits are restored when the block exits, including when it
    exits through an exception.

    :param num_threads: Maximum number of threads. `0` or `None` leaves the
        thread pools untouched.
    """
    if not num_threads:
        yield
        return

    logger.debug(f"Limiting OpenMP thread pools to {num_threads} threads.")
    with threadpool_limits(limits=num_threads, user_api="openmp"):
        yield


def openmp_num_threads():
    """
    Return the thread counts of the OpenMP runtimes loaded in this process.

    :return: A list with one entry per loaded OpenMP library.
    """
    return [
        info["num_threads"]
        for info in threadpool_info()
        if info.get("user_api") == "openmp"
    ]
