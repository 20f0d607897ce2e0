import numpy as np
import pytest

from knnbandit.Models import EpsilonGreedyItemBandit, EpsilonTGreedyItemBandit
from knnbandit.Models.ItemBandit import (count, get_update_function, get_value_function, identity, neighbor,
                                         nonstationary, stationary, unseen, useall)


class TestUpdateFunctions:
    def test_stationary(self):
        assert stationary()(0.0, 1.0, 0.0, 1.0, 1) == 1.0
        assert stationary()(1.0, 0.0, 1.0, 0.0, 2) == 0.5

    def test_stationary_first_pull(self):
        assert stationary()(0.3, 0.7, 0.0, 0.7, 0) == 0.7

    def test_nonstationary(self):
        assert nonstationary(0.5)(2.0, 4.0, 0.0, 4.0, 3) == 3.0

    def test_useall(self):
        assert useall()(0.5, 1.0, 2.0, 1.0, 1) == pytest.approx(2.0 / 3.0)

    def test_useall_without_mass(self):
        assert useall()(0.0, 0.0, 0.0, 0.0, 1) == 0.0

    def test_count(self):
        assert count()(2.0, 3.0, 0.0, 3.0, 1) == 5.0

    def test_lookup(self):
        assert get_update_function("nonstationary", 0.5)(0.0, 1.0, 0.0, 1.0, 1) == 0.5
        with pytest.raises(ValueError):
            get_update_function("median")


class TestValueFunctions:
    def test_identity(self):
        values = np.array([0.2, 0.4])
        assert np.array_equal(identity()(0, np.array([0, 1]), values, np.ones(2)), values)

    def test_unseen(self):
        scores = unseen()(0, np.array([0, 1]), np.array([0.5, 1.0]), np.ones(2))
        assert np.allclose(scores, [0.25, 0.0])

    def test_neighbor(self):
        scores = neighbor({1: 2.0})(0, np.array([0, 1]), np.array([0.5, 0.5]), np.ones(2))
        assert np.allclose(scores, [0.25, 1.0])

    def test_lookup(self):
        assert get_value_function("identity") is not None
        with pytest.raises(ValueError):
            get_value_function("ucb")


class TestEpsilonGreedy:
    def test_update_keeps_sum_of_values(self, tie_breaker):
        bandit = EpsilonGreedyItemBandit(4, 0.1, stationary(), tie_breaker)
        bandit.update(0, 1.0)
        bandit.update(0, 0.0)
        bandit.update(2, 1.0)
        assert bandit.values[0] == pytest.approx(0.5)
        assert bandit.values[2] == pytest.approx(1.0)
        assert bandit.counts[0] == 2
        assert bandit.sum_values == pytest.approx(bandit.values.sum())

    def test_first_observation_sets_value(self, tie_breaker):
        bandit = EpsilonGreedyItemBandit(3, 0.0, stationary(), tie_breaker)
        bandit.update(1, 0.8)
        assert bandit.values[1] == pytest.approx(0.8)

    def test_nothing_available(self, tie_breaker):
        bandit = EpsilonGreedyItemBandit(3, 0.5, stationary(), tie_breaker)
        assert bandit.select(0, np.array([], dtype=int), identity()) is None

    def test_single_item_uses_no_randomness(self, counting_tie_breaker):
        bandit = EpsilonGreedyItemBandit(3, 0.5, stationary(), counting_tie_breaker)
        assert bandit.select(0, np.array([2]), identity()) == 2
        assert counting_tie_breaker.draws == 0

    def test_greedy_picks_best(self, tie_breaker):
        bandit = EpsilonGreedyItemBandit(3, 0.0, stationary(), tie_breaker)
        bandit.update(1, 1.0)
        bandit.update(2, 0.5)
        for _ in range(20):
            assert bandit.select(0, np.array([0, 1, 2]), identity()) == 1

    def test_ties_are_broken_uniformly(self, tie_breaker):
        bandit = EpsilonGreedyItemBandit(5, 0.0, stationary(), tie_breaker)
        bandit.update(4, -1.0)
        available = np.arange(5)
        trials = 4000
        counts = np.zeros(5)
        for _ in range(trials):
            counts[bandit.select(0, available, identity())] += 1

        assert counts[4] == 0
        assert np.all(np.abs(counts[:4] / trials - 0.25) < 0.05)

    def test_full_exploration_covers_everything(self, tie_breaker):
        bandit = EpsilonGreedyItemBandit(3, 1.0, stationary(), tie_breaker)
        bandit.update(0, 1.0)
        chosen = {bandit.select(0, np.arange(3), identity()) for _ in range(200)}
        assert chosen == {0, 1, 2}


class TestEpsilonTGreedy:
    def test_epsilon_decays_with_updates(self, tie_breaker):
        bandit = EpsilonTGreedyItemBandit(4, 0.5, stationary(), tie_breaker)
        assert bandit.current_epsilon() == 1.0
        for iidx in (0, 1, 2):
            bandit.update(iidx, 1.0)
        assert bandit.current_epsilon() == pytest.approx(0.5)
        for _ in range(4):
            bandit.update(3, 0.0)
        assert bandit.current_epsilon() == pytest.approx(0.25)

    def test_epsilon_is_non_increasing(self, tie_breaker):
        bandit = EpsilonTGreedyItemBandit(10, 0.1, stationary(), tie_breaker)
        previous = bandit.current_epsilon()
        for t in range(50):
            bandit.update(t % 10, 1.0)
            assert bandit.current_epsilon() <= previous
            previous = bandit.current_epsilon()

    def test_counter_is_shared_by_all_arms(self, tie_breaker):
        bandit = EpsilonTGreedyItemBandit(4, 0.5, stationary(), tie_breaker)
        bandit.update(0, 1.0)
        bandit.update(1, 1.0)
        assert bandit.n_iter == 3
        assert bandit.counts[0] == bandit.counts[1] == 1
