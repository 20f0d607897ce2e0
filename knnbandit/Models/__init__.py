from .BaseModel import InteractiveRecommender
from .ItemBandit import ItemBandit
from .EpsilonGreedy import EpsilonGreedyItemBandit, EpsilonTGreedyItemBandit
from .ItemBanditRecommender import ItemBanditRecommender
from .UserBasedKNN import UserBasedKNN, IncrementalProbabilisticUserBasedKNN


__all__ = [
    "InteractiveRecommender",
    "ItemBandit",
    "EpsilonGreedyItemBandit",
    "EpsilonTGreedyItemBandit",
    "ItemBanditRecommender",
    "UserBasedKNN",
    "IncrementalProbabilisticUserBasedKNN",
]
