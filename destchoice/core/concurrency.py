# destchoice
# See full license in LICENSE.txt.
from __future__ import annotations

import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor, wait

import numpy as np

from destchoice.core import tracing

logger = logging.getLogger(__name__)


def partition(items, num_partitions):
    """
    Split a DataFrame (by rows) or a sequence into contiguous chunks.

    Chunk sizes sum to len(items) and differ by at most one, the first chunks
    hold ceil(N / num_partitions) items.  No empty chunks are returned, so
    fewer than num_partitions chunks result when there are fewer items.

    Parameters
    ----------
    items : pandas.DataFrame or sequence
    num_partitions : int

    Returns
    -------
    list
        of DataFrame slices (for a DataFrame) or lists
    """
    assert num_partitions > 0

    n = len(items)
    num_partitions = min(num_partitions, n)
    if num_partitions == 0:
        return []

    bounds = np.cumsum([0] + [len(a) for a in np.array_split(np.arange(n), num_partitions)])

    if hasattr(items, "iloc"):
        return [items.iloc[start:end] for start, end in zip(bounds[:-1], bounds[1:])]
    return [list(items[start:end]) for start, end in zip(bounds[:-1], bounds[1:])]


def run_tasks(tasks, num_threads=None, trace_label=None):
    """
    Run independent tasks in a thread pool and wait for all of them.

    Tasks must not depend on each other's results.  Each task is a callable
    taking no arguments (use functools.partial to bind them).

    Parameters
    ----------
    tasks : list of callable
    num_threads : int, optional
        pool size, defaults to os.cpu_count()
    trace_label : str

    Returns
    -------
    list
        task results in submission order

    Raises
    ------
    Exception
        the first (in submission order) task exception, re-raised once every task finished
    """
    trace_label = tracing.extend_trace_label(trace_label, "run_tasks")
    tasks = list(tasks)
    if not tasks:
        return []

    if num_threads is None:
        num_threads = os.cpu_count() or 1

    t0 = time.time()
    with ThreadPoolExecutor(max_workers=num_threads) as executor:
        futures = [executor.submit(task) for task in tasks]
        wait(futures)

    first_exception = None
    for i, future in enumerate(futures):
        exception = future.exception()
        if exception is not None:
            logger.error(f"{trace_label} task {i} failed: {exception!r}")
            if first_exception is None:
                first_exception = exception

    if first_exception is not None:
        raise first_exception

    tracing.print_elapsed_time(f"{trace_label} {len(tasks)} tasks", t0, debug=True)

    return [future.result() for future in futures]
