from knnbandit.Models.BaseModel import *
from knnbandit.Models.ItemBandit import get_value_function


class ItemBanditRecommender(InteractiveRecommender):
    """
    Recommends to every user what a single, non-personalised item bandit selects
    among the user's available items.

    Args:
        prefs (PreferenceData): Ground truth.
        tie_breaker (TieBreaker): Random source.
        bandit (ItemBandit): Arm selection and update policy.
        value_function (str or callable): Scores the arms; a name from
            ``VALUE_FUNCTIONS`` or a function built in ``ItemBandit``.
    """
    def __init__(self, prefs, tie_breaker, bandit, value_function="identity", **kwargs):
        super().__init__(prefs, tie_breaker, **kwargs)
        self.bandit = bandit
        if isinstance(value_function, str):
            value_function = get_value_function(value_function)
        self.value_function = value_function

    def next(self, uidx: int):
        return self.bandit.select(uidx, self.availability.items(uidx), self.value_function)

    def _update_method(self, uidx: int, iidx: int, value: float):
        self.bandit.update(iidx, value)
