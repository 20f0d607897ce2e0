import numpy as np
import pytest

from knnbandit.data import PreferenceData
from knnbandit.untie import TieBreaker


class CountingTieBreaker(TieBreaker):
    """Tie breaker that remembers how many values were drawn from it."""

    def __init__(self, seed, stream=0):
        super().__init__(seed, stream)
        self.draws = 0

    def random(self):
        self.draws += 1
        return super().random()

    def integers(self, n):
        self.draws += 1
        return super().integers(n)

    def shuffle(self, seq):
        self.draws += 1
        super().shuffle(seq)


@pytest.fixture
def all_ones():
    """3 users, 4 items, every pair rated 1.0."""
    return PreferenceData.from_triplets((u, i, 1.0) for u in range(3) for i in range(4))


@pytest.fixture
def sparse_prefs():
    """6 users, 8 items, about half of the pairs rated between 1 and 5."""
    rng = np.random.default_rng(3)
    triplets = [(u, i, float(rng.integers(1, 6))) for u in range(6) for i in range(8) if rng.random() < 0.5]
    # every user and item appears at least once
    triplets += [(u, 100, 5.0) for u in range(6)]
    triplets += [(100, i, 4.0) for i in range(8)]
    return PreferenceData.from_triplets(triplets)


@pytest.fixture
def tie_breaker():
    return TieBreaker(42)


@pytest.fixture
def counting_tie_breaker():
    return CountingTieBreaker(42)


@pytest.fixture
def counting_neighbor_untie():
    return CountingTieBreaker(42, 1)
