import logging
from abc import ABC, abstractmethod

import numpy as np

from knnbandit.availability import Availability
from knnbandit.data import FeedbackData

logger = logging.getLogger(__name__)


class InteractiveRecommender(ABC):
    """
    Abstract base class for recommenders that learn from one (user, item) pair at a time.

    A recommender owns the availability of every user and the ratings observed so
    far. Nothing here is shared with other recommenders, except the read-only
    ground truth.

    Args:
        prefs (PreferenceData): Ground truth used to resolve the reward of a pair.
        tie_breaker (TieBreaker): Random source for ties and uniform choices.
        ignore_unknown (bool): If True, recommending a pair without a rating teaches
            nothing. If False, the pair counts as a ``unknown_value`` reward.
        unknown_value (float): Reward of unrated pairs when they are not ignored.
        exclude_reciprocal (bool): When user u is recommended item v and the link
            exists, v will no longer be recommended u. Only meaningful when users
            and items share the index space.
        exclude_self (bool): Never recommend a user to itself.
    """
    def __init__(self, prefs, tie_breaker, ignore_unknown: bool = True, unknown_value: float = 0.0,
                 exclude_reciprocal: bool = False, exclude_self: bool = False, **kwargs):
        self.prefs = prefs
        self.n_users = prefs.n_users
        self.n_items = prefs.n_items
        self.tie_breaker = tie_breaker
        self.ignore_unknown = ignore_unknown
        self.unknown_value = float(unknown_value)
        self.exclude_reciprocal = exclude_reciprocal

        self.availability = Availability(self.n_users, self.n_items, exclude_self=exclude_self)
        self.feedback = FeedbackData(self.n_users, self.n_items)

    @abstractmethod
    def next(self, uidx: int):
        """
        Chooses the next item for a user among the ones still available.

        Returns:
            int or None: The item index, None if nothing is left for the user.
        """
        pass

    @abstractmethod
    def _update_method(self, uidx: int, iidx: int, value: float):
        """Learns from the reward of a pair. Called once the pair is in ``self.feedback``."""
        pass

    def _resolve(self, uidx: int, iidx: int, reward=None):
        if reward is not None:
            return float(reward)
        value = self.prefs.rating(uidx, iidx)
        if value is not None:
            return value
        if self.ignore_unknown:
            return None
        return self.unknown_value

    def _absorb(self, uidx: int, iidx: int, reward=None):
        """Records the pair as shown and as observed. Returns the reward, None if skipped."""
        value = self._resolve(uidx, iidx, reward)
        self.availability.remove(uidx, iidx)

        if self.exclude_reciprocal and iidx < self.n_users and uidx < self.n_items \
                and self.prefs.rating(uidx, iidx) is not None:
            self.availability.remove(iidx, uidx)

        if value is not None:
            self.feedback.add(uidx, iidx, value)
        return value

    def update(self, uidx: int, iidx: int, reward=None):
        """
        Absorbs the outcome of recommending ``iidx`` to ``uidx``.

        Args:
            uidx (int): User index.
            iidx (int): Item index.
            reward (float): Reward to use instead of the ground truth rating.

        Returns:
            float or None: The reward learnt from, None if the pair was skipped.
        """
        value = self._absorb(uidx, iidx, reward)
        if value is not None:
            self._update_method(uidx, iidx, value)
        return value

    def warmup(self, pairs):
        """Absorbs a batch of historical (uidx, iidx) pairs before the simulation starts."""
        for uidx, iidx in pairs:
            self.update(uidx, iidx)

    def _random_available(self, available: np.ndarray):
        if len(available) == 0:
            return None
        if len(available) == 1:
            return int(available[0])
        return int(available[self.tie_breaker.integers(len(available))])
