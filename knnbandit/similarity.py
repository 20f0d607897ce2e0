import math
from abc import ABC, abstractmethod

import numpy as np


class UpdateableSimilarity(ABC):
    """
    User-user similarity that can be refreshed after every observed rating.
    """

    @abstractmethod
    def update(self, uidx: int, vidx: int, iidx: int, uval: float, vval: float):
        """
        Absorbs a new rating ``uval`` of user ``uidx`` for item ``iidx``, given the
        rating ``vval`` that user ``vidx`` already gave to the same item.
        """
        pass

    @abstractmethod
    def rebuild(self, data):
        """Recomputes the whole structure from a rating table (see ``data.RatingTable``)."""
        pass

    @abstractmethod
    def similarity(self, uidx: int):
        """Returns a function mapping another user index to its similarity with ``uidx``."""
        pass

    def similar_elems(self, uidx: int) -> list:
        """(vidx, score) for every other user with a positive similarity, in index order."""
        sim = self.similarity(uidx)
        elems = []
        for vidx in range(self.n_users):
            if vidx == uidx:
                continue
            score = sim(vidx)
            if score > 0.0:
                elems.append((vidx, score))
        return elems


class ProbabilisticSimilarity(UpdateableSimilarity):
    """
    Probabilistic user similarity: the accumulated co-rating mass of two users,
    normalised by the square of the total rating mass observed so far.

        sim(u, v) = sum_i r(u, i) * r(v, i) / (sum_{w, i} r(w, i))^2

    Args:
        n_users (int): Number of users.
    """
    def __init__(self, n_users: int):
        self.n_users = n_users
        self.sims = np.zeros((n_users, n_users), dtype=float)
        self.sum = 0.0
        self.last_user = -1
        self.last_item = -1

    def update(self, uidx: int, vidx: int, iidx: int, uval: float, vval: float):
        if not math.isnan(vval):
            product = uval * vval
            self.sims[uidx, vidx] += product
            if vidx != uidx:
                self.sims[vidx, uidx] += product

        # the rating of (uidx, iidx) is counted once, whatever the number of co-raters
        if uidx != self.last_user or iidx != self.last_item:
            self.sum += uval
            self.last_user = uidx
            self.last_item = iidx

    def rebuild(self, data):
        ratings = data.to_csr()
        self.sims = np.asarray((ratings @ ratings.T).todense(), dtype=float)
        self.sum = float(ratings.sum())
        self.last_user = -1
        self.last_item = -1

    def similarity(self, uidx: int):
        row = self.sims[uidx]
        norm = self.sum * self.sum

        def sim(vidx: int) -> float:
            if self.sum > 0:
                return float(row[vidx] / norm)
            return 0.0

        return sim

    def similar_elems(self, uidx: int) -> list:
        if self.sum <= 0:
            return []
        scores = self.sims[uidx] / (self.sum * self.sum)
        candidates = np.flatnonzero(scores > 0.0)
        return [(int(vidx), float(scores[vidx])) for vidx in candidates if vidx != uidx]
