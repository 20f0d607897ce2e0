from knnbandit.Models.ItemBandit import *


class EpsilonGreedyItemBandit(ItemBandit):
    """
    Epsilon-greedy item bandit.

    With probability epsilon a uniformly random available item is explored;
    otherwise the item with the best score is exploited, exact ties being broken
    uniformly at random.

    Args:
        n_items (int): Number of arms.
        epsilon (float): Exploration probability.
        update_function (callable): Arm value update rule.
        tie_breaker (TieBreaker): Random source for exploration and ties.
    """
    def __init__(self, n_items: int, epsilon: float, update_function, tie_breaker, **kwargs):
        super().__init__(n_items, update_function, tie_breaker, **kwargs)
        self.epsilon = float(epsilon)

    def current_epsilon(self) -> float:
        return self.epsilon

    def select(self, uidx: int, available: np.ndarray, value_function):
        if available is None or len(available) == 0:
            return None
        if len(available) == 1:
            return int(available[0])

        if self.tie_breaker.random() < self.current_epsilon():
            return int(available[self.tie_breaker.integers(len(available))])
        return self._greedy(uidx, available, value_function)


class EpsilonTGreedyItemBandit(EpsilonGreedyItemBandit):
    """
    Epsilon-greedy bandit with a decaying exploration rate.

    epsilon_t = min(1, alpha * n_items / t), where t starts at 1 and grows with
    every update, whichever the arm.
    """
    def __init__(self, n_items: int, alpha: float, update_function, tie_breaker, **kwargs):
        super().__init__(n_items, 1.0, update_function, tie_breaker, **kwargs)
        self.alpha = float(alpha)
        self.n_iter = 1

    def current_epsilon(self) -> float:
        return min(1.0, self.alpha * self.n_items / self.n_iter)

    def update(self, iidx: int, reward: float):
        self.n_iter += 1
        super().update(iidx, reward)
