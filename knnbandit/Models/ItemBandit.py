from abc import ABC, abstractmethod

import numpy as np


def stationary():
    """Running mean of the rewards."""
    def apply(old_value, reward, old_sum, increment, n_times):
        if n_times == 0:
            return reward
        return old_value + (reward - old_value) / n_times
    return apply


def nonstationary(alpha: float):
    """Exponential smoothing with step ``alpha``."""
    def apply(old_value, reward, old_sum, increment, n_times):
        return old_value + alpha * (reward - old_value)
    return apply


def useall():
    """Value weighted by the whole reward mass collected by the bandit."""
    def apply(old_value, reward, old_sum, increment, n_times):
        if old_sum + increment == 0:
            return old_value
        return (old_value * old_sum + reward) / (old_sum + increment)
    return apply


def count():
    """Accumulated reward."""
    def apply(old_value, reward, old_sum, increment, n_times):
        return old_value + reward
    return apply


UPDATE_FUNCTIONS = {
    "stationary": lambda alpha: stationary(),
    "nonstationary": nonstationary,
    "useall": lambda alpha: useall(),
    "count": lambda alpha: count(),
}


def get_update_function(name: str, alpha: float = 0.1):
    if name not in UPDATE_FUNCTIONS:
        raise ValueError(f"Unknown update function: '{name}'. Choose from {', '.join(UPDATE_FUNCTIONS)}.")
    return UPDATE_FUNCTIONS[name](alpha)


# Value functions score the candidate arms from their current state:
# f(uidx, items, values, counts) -> scores, all arrays aligned with ``items``.

def identity():
    def apply(uidx, items, values, counts):
        return values
    return apply


def neighbor(weights: dict):
    """Arm value scaled by an external per-item weight; value squared for unweighted items."""
    def apply(uidx, items, values, counts):
        w = np.array([weights.get(int(i), np.nan) for i in items], dtype=float)
        return np.where(np.isnan(w), values * values, w * values)
    return apply


def unseen():
    def apply(uidx, items, values, counts):
        return values * (1.0 - values)
    return apply


VALUE_FUNCTIONS = {
    "identity": identity,
    "unseen": unseen,
}


def get_value_function(name: str):
    if name not in VALUE_FUNCTIONS:
        raise ValueError(f"Unknown value function: '{name}'. Choose from {', '.join(VALUE_FUNCTIONS)}.")
    return VALUE_FUNCTIONS[name]()


class ItemBandit(ABC):
    """
    Abstract base class for non-personalised bandits where every item is an arm.

    Holds the arm state (value estimate and number of pulls per item) and the
    running sum of all the values, and defines how it is updated. Subclasses
    decide how an arm is selected.

    Args:
        n_items (int): Number of arms.
        update_function (callable): Rule computing the new value of a pulled arm.
        tie_breaker (TieBreaker): Random source for exploration and ties.
    """
    def __init__(self, n_items: int, update_function, tie_breaker, **kwargs):
        self.n_items = n_items
        self.update_function = update_function
        self.tie_breaker = tie_breaker

        self.values = np.zeros(n_items, dtype=float)
        self.counts = np.zeros(n_items, dtype=float)
        self.sum_values = 0.0

    @abstractmethod
    def select(self, uidx: int, available: np.ndarray, value_function):
        """
        Chooses an arm among ``available``.

        Returns:
            int or None: The chosen item, None if ``available`` is empty.
        """
        pass

    def update(self, iidx: int, reward: float):
        old_sum = self.sum_values
        old_value = self.values[iidx]

        self.counts[iidx] += 1
        new_value = self.update_function(old_value, reward, old_sum, reward, self.counts[iidx])

        self.values[iidx] = new_value
        self.sum_values += new_value - old_value

    def _greedy(self, uidx: int, available: np.ndarray, value_function) -> int:
        scores = np.asarray(value_function(uidx, available, self.values[available], self.counts[available]),
                            dtype=float)
        top = available[scores == scores.max()]
        if len(top) == 1:
            return int(top[0])
        return int(top[self.tie_breaker.integers(len(top))])
