"""Rating stores: the read-only ground truth and the feedback observed during a run."""

import logging

import numpy as np
import scipy.sparse as sp

logger = logging.getLogger(__name__)


class RatingTable:
    """
    Sparse (user, item) -> rating table indexed both by user and by item.

    Args:
        n_users (int): Number of user indices.
        n_items (int): Number of item indices.
    """
    def __init__(self, n_users: int, n_items: int):
        self.n_users = n_users
        self.n_items = n_items
        self._user_prefs = [dict() for _ in range(n_users)]
        self._item_prefs = [dict() for _ in range(n_items)]
        self.num_ratings = 0

    def _set(self, uidx: int, iidx: int, value: float) -> bool:
        new = iidx not in self._user_prefs[uidx]
        self._user_prefs[uidx][iidx] = value
        self._item_prefs[iidx][uidx] = value
        if new:
            self.num_ratings += 1
        return new

    def rating(self, uidx: int, iidx: int):
        """Rating of the pair, or None when the pair was never rated."""
        return self._user_prefs[uidx].get(iidx)

    def user_items(self, uidx: int) -> dict:
        return self._user_prefs[uidx]

    def item_users(self, iidx: int) -> dict:
        return self._item_prefs[iidx]

    def users_with_preferences(self) -> list:
        return [uidx for uidx in range(self.n_users) if self._user_prefs[uidx]]

    def to_csr(self) -> sp.csr_matrix:
        rows, cols, data = [], [], []
        for uidx, prefs in enumerate(self._user_prefs):
            for iidx, value in prefs.items():
                rows.append(uidx)
                cols.append(iidx)
                data.append(value)
        return sp.csr_matrix((np.array(data, dtype=float), (np.array(rows, dtype=int), np.array(cols, dtype=int))),
                             shape=(self.n_users, self.n_items))


class PreferenceData(RatingTable):
    """
    Immutable ground truth of a simulation.

    External user and item identifiers are mapped to dense indices in sorted
    identifier order. Nothing in the simulation modifies this store; it is only
    queried to find out what would happen if a pair were recommended.

    Args:
        users (list): External user identifiers.
        items (list): External item identifiers.
        triplets (iterable): (user, item, rating) tuples over those identifiers.
    """
    def __init__(self, users, items, triplets):
        self.idx_to_user = sorted(set(users))
        self.idx_to_item = sorted(set(items))
        self.user_to_idx = {u: idx for idx, u in enumerate(self.idx_to_user)}
        self.item_to_idx = {i: idx for idx, i in enumerate(self.idx_to_item)}
        super().__init__(len(self.idx_to_user), len(self.idx_to_item))

        duplicates = 0
        for user, item, rating in triplets:
            if not self._set(self.user_to_idx[user], self.item_to_idx[item], float(rating)):
                duplicates += 1
        if duplicates > 0:
            logger.warning("Found %d repeated (user, item) pairs; kept the last rating of each", duplicates)

    @classmethod
    def from_triplets(cls, triplets) -> "PreferenceData":
        triplets = list(triplets)
        return cls([u for u, _, _ in triplets], [i for _, i, _ in triplets], triplets)

    def user2uidx(self, user) -> int:
        return self.user_to_idx[user]

    def uidx2user(self, uidx: int):
        return self.idx_to_user[uidx]

    def item2iidx(self, item) -> int:
        return self.item_to_idx[item]

    def iidx2item(self, iidx: int):
        return self.idx_to_item[iidx]

    def num_relevant(self, is_relevant) -> int:
        """Counts the rated pairs whose rating satisfies ``is_relevant``."""
        return sum(1 for prefs in self._user_prefs for value in prefs.values() if is_relevant(value))


class FeedbackData(RatingTable):
    """Ratings observed so far by one interactive recommender."""

    def add(self, uidx: int, iidx: int, value: float):
        self._set(uidx, iidx, value)


def load_ratings(filepath, threshold: float, use_ratings: bool = True, sep: str = "::"):
    """
    Reads a ``user::item::rating`` file.

    Args:
        filepath (str): Input file.
        threshold (float): Relevance threshold.
        use_ratings (bool): Keep the rating values. Otherwise ratings are binarised
            to 1.0 when they reach the threshold and 0.0 when they do not.
        sep (str): Field separator.

    Returns:
        tuple: (PreferenceData, number of relevant pairs).
    """
    if use_ratings:
        weight = lambda x: x
        is_relevant = lambda x: x >= threshold
    else:
        weight = lambda x: 1.0 if x >= threshold else 0.0
        is_relevant = lambda x: x > 0.0

    triplets = []
    with open(filepath, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            fields = line.split(sep)
            triplets.append((int(fields[0]), int(fields[1]), weight(float(fields[2]))))

    prefs = PreferenceData.from_triplets(triplets)
    num_rel = prefs.num_relevant(is_relevant)
    logger.info("Loaded %d ratings: %d users, %d items, %d relevant", prefs.num_ratings, prefs.n_users,
                prefs.n_items, num_rel)
    return prefs, num_rel


def load_graph(filepath, directed: bool, exclude_reciprocal: bool = True, sep: str = "\t"):
    """
    Reads an edge list for contact recommendation.

    Users and items share the node index space and every arc becomes a rating of
    1.0. An undirected edge produces both arcs. Self loops are dropped. When
    reciprocal links are excluded, recommending one arc of a reciprocated pair
    removes the other one, so only one of them counts as relevant.

    Returns:
        tuple: (PreferenceData, number of relevant pairs).
    """
    nodes = set()
    arcs = set()
    with open(filepath, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            fields = line.split(sep)
            u, v = int(fields[0]), int(fields[1])
            nodes.add(u)
            nodes.add(v)
            if u == v:
                continue
            arcs.add((u, v))
            if not directed:
                arcs.add((v, u))

    reciprocated = sum(1 for (u, v) in arcs if (v, u) in arcs)
    num_rel = len(arcs) - reciprocated // 2 if exclude_reciprocal else len(arcs)

    prefs = PreferenceData(nodes, nodes, ((u, v, 1.0) for (u, v) in sorted(arcs)))
    logger.info("Loaded graph: %d nodes, %d arcs, %d relevant", prefs.n_users, len(arcs), num_rel)
    return prefs, num_rel
