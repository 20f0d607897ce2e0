"""Effectiveness metrics updated one recommendation at a time."""

from abc import ABC, abstractmethod

import numpy as np


class IncrementalMetric(ABC):
    @abstractmethod
    def update(self, uidx: int, iidx: int):
        pass

    @abstractmethod
    def compute(self) -> float:
        pass

    @abstractmethod
    def reset(self):
        pass


class IncrementalRecall(IncrementalMetric):
    """
    Fraction of the relevant (user, item) pairs of the whole dataset that have
    been recommended so far.

    Args:
        prefs (PreferenceData): Ground truth.
        num_relevant (int): Number of relevant pairs in the ground truth.
        threshold (float): Minimum rating of a relevant pair.
    """
    def __init__(self, prefs, num_relevant: int, threshold: float):
        self.prefs = prefs
        self.num_relevant = num_relevant
        self.threshold = threshold
        self.current = 0

    def update(self, uidx: int, iidx: int):
        value = self.prefs.rating(uidx, iidx)
        if value is not None and value >= self.threshold:
            self.current += 1

    def compute(self) -> float:
        if self.num_relevant == 0:
            return 0.0
        return self.current / self.num_relevant

    def reset(self):
        self.current = 0


class IncrementalGini(IncrementalMetric):
    """
    Gini coefficient of the number of times each item has been recommended.

    0 means every item was recommended equally often, 1 means all the
    recommendations went to a single item. Items are kept sorted by frequency, so
    the weighted sum sum_j (2j - n - 1) f_(j) changes by a single term when one
    frequency grows by one.

    Args:
        n_items (int): Number of items.
    """
    def __init__(self, n_items: int):
        self.n_items = n_items
        self.reset()

    def reset(self):
        self.freqs = np.zeros(self.n_items, dtype=np.int64)
        self.sorted_freqs = np.zeros(self.n_items, dtype=np.int64)
        self.order = np.arange(self.n_items)      # position -> item
        self.position = np.arange(self.n_items)   # item -> position
        self.total = 0
        self.numerator = 0

    def update(self, uidx: int, iidx: int):
        freq = self.freqs[iidx]
        pos = self.position[iidx]
        # last position holding the same frequency
        last = int(np.searchsorted(self.sorted_freqs, freq, side="right")) - 1

        if last != pos:
            other = self.order[last]
            self.order[pos], self.order[last] = other, iidx
            self.position[other], self.position[iidx] = pos, last

        self.sorted_freqs[last] += 1
        self.freqs[iidx] += 1
        self.total += 1
        self.numerator += 2 * (last + 1) - self.n_items - 1

    def compute(self) -> float:
        if self.n_items <= 1 or self.total == 0:
            return 0.0
        return float(self.numerator) / ((self.n_items - 1) * self.total)


def default_metrics(prefs, num_relevant: int, threshold: float) -> dict:
    """Ordered name -> factory map of the metrics reported in every log."""
    return {
        "recall": lambda: IncrementalRecall(prefs, num_relevant, threshold),
        "gini": lambda: IncrementalGini(prefs.n_items),
    }
