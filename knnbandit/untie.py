"""Shared tie-break randomness and the per-run seed file."""

import logging
import os
import threading

import numpy as np

logger = logging.getLogger(__name__)

SEED_FILENAME = "rngseed"


class TieBreaker:
    """
    Deterministic random source used to resolve exact ties and uniform exploration.

    Every draw is taken under a lock, so a single instance can be read by several
    algorithm instances running in parallel threads.

    Args:
        seed (int): Run seed shared by the whole run.
        stream (int): Identifier of the derived stream. Different streams built
            from the same seed are independent of each other.
    """
    def __init__(self, seed: int, stream: int = 0):
        self.seed = int(seed)
        self.stream = int(stream)
        self._rng = np.random.default_rng([self.seed, self.stream])
        self._lock = threading.Lock()

    def random(self) -> float:
        with self._lock:
            return float(self._rng.random())

    def integers(self, n: int) -> int:
        """Uniform integer in [0, n)."""
        with self._lock:
            return int(self._rng.integers(n))

    def shuffle(self, seq: list):
        with self._lock:
            self._rng.shuffle(seq)

    def spawn(self, stream: int) -> "TieBreaker":
        return TieBreaker(self.seed, stream)


def generate_seed() -> int:
    return int(np.random.default_rng().integers(0, 2**31 - 1))


def read_seed(path) -> int:
    with open(path, "r") as f:
        line = f.readline().strip()
    try:
        return int(line)
    except ValueError:
        raise ValueError(f"Invalid random seed file {path}: {line!r}")


def write_seed(path, seed: int):
    with open(path, "w") as f:
        f.write(f"{seed}")


def resolve_seed(output_dir, recover: bool = False) -> int:
    """
    Finds the tie-break seed for a run and stores it in ``output_dir/rngseed``.

    When recovering, a previously stored seed is reused so the resumed run breaks
    ties exactly as the interrupted one did. Otherwise a new seed is drawn.
    """
    path = os.path.join(output_dir, SEED_FILENAME)
    if recover and os.path.exists(path):
        seed = read_seed(path)
        logger.info("Recovered random seed %d from %s", seed, path)
    else:
        seed = generate_seed()
        logger.info("Generated random seed %d", seed)

    write_seed(path, seed)
    return seed
