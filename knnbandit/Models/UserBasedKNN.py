import heapq

from knnbandit.Models.BaseModel import *

NEIGHBOR_STREAM = 1


class UserBasedKNN(InteractiveRecommender):
    """
    Abstract interactive user-based kNN.

    For a target user, the k most similar users are found and each of the items
    they rated is scored by sum_v sim(u, v) * score(v, r(v, i)). The best available
    item is recommended. Candidate neighbours are shuffled before building the
    top-k, so neighbours with equal similarity are kept without positional bias.

    Args:
        prefs (PreferenceData): Ground truth.
        tie_breaker (TieBreaker): Random source for ties and fallbacks.
        similarity (UpdateableSimilarity): User-user similarity, kept up to date
            with the observed ratings.
        k (int): Number of neighbours. 0 or less uses every user.
        ignore_zeroes (bool): Do not score items whose contribution is not positive.
    """
    def __init__(self, prefs, tie_breaker, similarity, k: int = 10, ignore_zeroes: bool = True, **kwargs):
        super().__init__(prefs, tie_breaker, **kwargs)
        self.sim = similarity
        self.k = k if k > 0 else self.n_users
        self.ignore_zeroes = ignore_zeroes
        self.neighbor_untie = tie_breaker.spawn(NEIGHBOR_STREAM)

    @abstractmethod
    def score(self, vidx: int, rating: float) -> float:
        pass

    def neighbors(self, uidx: int) -> list:
        """Top-k (vidx, similarity) pairs of the user, in no particular order."""
        candidates = self.sim.similar_elems(uidx)
        self.neighbor_untie.shuffle(candidates)

        heap = []
        for order, (vidx, s) in enumerate(candidates):
            if len(heap) < self.k:
                heapq.heappush(heap, (s, order, vidx))
            elif heap[0][0] <= s:
                heapq.heapreplace(heap, (s, order, vidx))
        return [(vidx, s) for s, _, vidx in heap]

    def next(self, uidx: int):
        available = self.availability.items(uidx)
        if len(available) == 0:
            return None
        if len(available) == 1:
            return int(available[0])

        neighbors = self.neighbors(uidx)
        if not neighbors:
            return self._random_available(available)

        item_scores = {}
        for vidx, s in neighbors:
            for iidx, rating in self.feedback.user_items(vidx).items():
                p = s * self.score(vidx, rating)
                if not self.ignore_zeroes or p > 0:
                    item_scores[iidx] = item_scores.get(iidx, 0.0) + p

        best = None
        top = []
        for iidx in sorted(item_scores):
            if not self.availability.contains(uidx, iidx):
                continue
            val = item_scores[iidx]
            if not top or val > best:
                best = val
                top = [iidx]
            elif val == best:
                top.append(iidx)

        if not top:
            return self._random_available(available)
        if len(top) == 1:
            return top[0]
        return top[self.tie_breaker.integers(len(top))]

    def warmup(self, pairs):
        """Absorbs the pairs and then rebuilds the similarity in a single pass."""
        for uidx, iidx in pairs:
            value = self._absorb(uidx, iidx)
            if value is not None:
                self._register(uidx, iidx, value)
        self.sim.rebuild(self.feedback)

    def _register(self, uidx: int, iidx: int, value: float):
        """Per-rating bookkeeping of subclasses that does not involve the similarity."""
        pass


class IncrementalProbabilisticUserBasedKNN(UserBasedKNN):
    """
    User-based kNN over a probabilistic similarity. A neighbour's rating is
    normalised by the total rating mass that neighbour has received so far.
    """
    def __init__(self, prefs, tie_breaker, similarity, k: int = 10, ignore_zeroes: bool = True, **kwargs):
        super().__init__(prefs, tie_breaker, similarity, k=k, ignore_zeroes=ignore_zeroes, **kwargs)
        self.user_pops = np.zeros(self.n_users, dtype=float)

    def score(self, vidx: int, rating: float) -> float:
        if self.user_pops[vidx] == 0:
            return 0.0
        return rating / self.user_pops[vidx]

    def _register(self, uidx: int, iidx: int, value: float):
        self.user_pops[uidx] += value

    def _update_method(self, uidx: int, iidx: int, value: float):
        self._register(uidx, iidx, value)
        for vidx, vval in self.feedback.item_users(iidx).items():
            self.sim.update(uidx, vidx, iidx, value, vval)
