import json
from dataclasses import dataclass
from typing import Optional

from knnbandit.Models import (EpsilonGreedyItemBandit, EpsilonTGreedyItemBandit, ItemBanditRecommender,
                              IncrementalProbabilisticUserBasedKNN)
from knnbandit.Models.ItemBandit import get_update_function
from knnbandit.similarity import ProbabilisticSimilarity


@dataclass
class SimulationConfig:
    """Settings shared by every algorithm of a run."""

    n_iter: int = 0                 # 0: until no user can receive more recommendations
    threshold: float = 0.5
    use_ratings: bool = True
    recover: bool = False
    flush_every: int = 1000
    ignore_unknown: bool = True
    exclude_reciprocal: bool = False
    directed: bool = True
    max_workers: Optional[int] = None
    user_seed: int = 0
    log_level: str = "INFO"

    @property
    def relevance_threshold(self) -> float:
        # binarised ratings are 1.0 for relevant pairs
        return self.threshold if self.use_ratings else 0.5


def build_item_bandit(prefs, tie_breaker, variant="epsilon", epsilon=0.1, alpha=1.0, update="stationary",
                      update_alpha=0.1, value="identity", **kwargs):
    update_function = get_update_function(update, update_alpha)
    if variant == "epsilon":
        bandit = EpsilonGreedyItemBandit(prefs.n_items, epsilon, update_function, tie_breaker)
    elif variant == "epsilon-t":
        bandit = EpsilonTGreedyItemBandit(prefs.n_items, alpha, update_function, tie_breaker)
    else:
        raise ValueError(f"Unknown bandit variant: '{variant}'. Choose from 'epsilon', 'epsilon-t'.")
    return ItemBanditRecommender(prefs, tie_breaker, bandit, value_function=value, **kwargs)


def build_user_knn(prefs, tie_breaker, k=10, ignore_zeroes=True, **kwargs):
    similarity = ProbabilisticSimilarity(prefs.n_users)
    return IncrementalProbabilisticUserBasedKNN(prefs, tie_breaker, similarity, k=k, ignore_zeroes=ignore_zeroes,
                                                **kwargs)


ALGORITHMS = {
    "bandit": build_item_bandit,
    "ub": build_user_knn,
}


base_configs = {
    "bandit": [
        {'variant': 'epsilon', 'epsilon': 0.0, 'update': 'stationary'},
        {'variant': 'epsilon', 'epsilon': 0.1, 'update': 'stationary'},
        {'variant': 'epsilon', 'epsilon': 0.2, 'update': 'stationary'},
        {'variant': 'epsilon', 'epsilon': 0.1, 'update': 'nonstationary', 'update_alpha': 0.1},
        {'variant': 'epsilon', 'epsilon': 0.1, 'update': 'useall'},
        {'variant': 'epsilon', 'epsilon': 0.1, 'update': 'count'},
        {'variant': 'epsilon-t', 'alpha': 0.1, 'update': 'stationary'},
        {'variant': 'epsilon-t', 'alpha': 1.0, 'update': 'stationary'},
    ],

    "ub": [
        {'k': 10, 'ignore_zeroes': True},
        {'k': 50, 'ignore_zeroes': True},
        {'k': 0, 'ignore_zeroes': True},
    ],
}


def algorithm_name(kind: str, params: dict) -> str:
    """Stable identifier of a configuration, e.g. ``bandit-epsilon-0.1-update-stationary``."""
    parts = [kind]
    for key in sorted(params):
        parts.append(f"{key}-{params[key]}")
    return "-".join(parts).replace(" ", "")


def load_algorithm_grid(filepath) -> dict:
    """Reads a ``{"bandit": [{...}, ...], "ub": [...]}`` grid from a JSON file."""
    with open(filepath, "r", encoding="utf-8") as f:
        grid = json.load(f)
    for kind in grid:
        if kind not in ALGORITHMS:
            raise ValueError(f"Unknown algorithm: '{kind}'. Choose from {', '.join(ALGORITHMS)}.")
    return grid


def build_recommenders(prefs, tie_breaker_factory, grid: dict, config: SimulationConfig, exclude_self=False) -> dict:
    """
    Maps every configuration of the grid to a factory of fresh recommenders.

    Args:
        prefs (PreferenceData): Ground truth.
        tie_breaker_factory (callable): Returns the tie breaker of a new instance.
        grid (dict): Algorithm kind -> list of parameter dicts.
        config (SimulationConfig): Run settings.
        exclude_self (bool): Never recommend users to themselves.

    Returns:
        dict: name -> zero-argument function building the recommender.
    """
    factories = {}
    for kind, param_list in grid.items():
        if kind not in ALGORITHMS:
            raise ValueError(f"Unknown algorithm: '{kind}'. Choose from {', '.join(ALGORITHMS)}.")
        builder = ALGORITHMS[kind]
        for params in param_list:
            name = algorithm_name(kind, params)

            def factory(builder=builder, params=params):
                return builder(prefs, tie_breaker_factory(), ignore_unknown=config.ignore_unknown,
                               exclude_reciprocal=config.exclude_reciprocal, exclude_self=exclude_self, **params)

            factories[name] = factory
    return factories
