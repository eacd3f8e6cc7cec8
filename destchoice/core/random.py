# destchoice
# See full license in LICENSE.txt.
from __future__ import annotations

import hashlib
import logging

import numpy as np

logger = logging.getLogger(__name__)

# one more than 0xFFFFFFFF so we can wrap using: int64 % _MAX_SEED
_MAX_SEED = 1 << 32
_SEED_MASK = 0xFFFFFFFF


def hash32(s):
    """

    Parameters
    ----------
    s: str

    Returns
    -------
        32 bit unsigned hash
    """
    s = s.encode("utf8")
    h = hashlib.md5(s).hexdigest()
    return int(h, base=16) & _SEED_MASK


class Random(object):
    """
    Hands out independent, repeatable random streams for parallel tasks.

    A numpy RandomState is not safe for concurrent use, so every task gets
    its own. Streams are seeded with (base_seed + step_seed + task_index) % (1 << 32),
    where step_seed is a stable hash of the step name, so that tasks of different
    steps (mode restriction choice, HBS destinations, ...) never share a stream and
    the same base seed and partitioning reproduce the same results.
    """

    def __init__(self, base_seed=0):
        self.base_seed = None
        self.rngs_handed_out = 0
        self.set_base_seed(base_seed)

    def set_base_seed(self, seed=None):
        """
        Like seed for numpy.random.RandomState, but generalized for use with all task streams.

        Changing the seed is only allowed before the first task stream is handed out,
        otherwise tasks of the same run would draw from differently seeded streams.

        Parameters
        ----------
        seed : int or None
            None draws a seed from the operating system entropy pool
        """

        if self.rngs_handed_out:
            raise RuntimeError("Can only call set_base_seed before the first step.")

        if seed is None:
            self.base_seed = np.random.RandomState().randint(_MAX_SEED, dtype=np.uint32)
            logger.info("Set random seed randomly to %s" % self.base_seed)
        else:
            assert int(seed) == seed
            self.base_seed = int(seed)
            logger.debug("Set random seed base to %s" % self.base_seed)

    def task_seed(self, step_name, task_index):
        """
        Return the seed for the stream of one task of a step.

        Parameters
        ----------
        step_name : str
            name of the step (e.g. 'mode_restriction_choice', 'destination_HBS')
        task_index : int
            position of the task in its submission batch

        Returns
        -------
        seed : int
        """
        assert task_index >= 0
        return (int(self.base_seed) + hash32(step_name) + int(task_index)) % _MAX_SEED

    def get_task_rng(self, step_name, task_index):
        """
        Return a freshly seeded numpy RandomState owned by a single task.

        Returns
        -------
        prng : numpy.random.RandomState
        """
        self.rngs_handed_out += 1
        return np.random.RandomState(self.task_seed(step_name, task_index))
