import numpy as np


class Availability:
    """
    Per-user set of items that may still be recommended.

    Sets only shrink: once an item is removed for a user it never comes back.

    Args:
        n_users (int): Number of users.
        n_items (int): Number of items.
        exclude_self (bool): Remove (u, u) up front. Used when users and items
            share the same index space, as in contact recommendation.
    """
    def __init__(self, n_users: int, n_items: int, exclude_self: bool = False):
        self.n_users = n_users
        self.n_items = n_items
        self.mask = np.ones((n_users, n_items), dtype=bool)
        self.sizes = np.full(n_users, n_items, dtype=int)

        if exclude_self:
            diag = np.arange(min(n_users, n_items))
            self.mask[diag, diag] = False
            self.sizes[diag] -= 1

    def items(self, uidx: int) -> np.ndarray:
        """Available items of the user, in ascending index order."""
        return np.flatnonzero(self.mask[uidx])

    def contains(self, uidx: int, iidx: int) -> bool:
        return bool(self.mask[uidx, iidx])

    def remove(self, uidx: int, iidx: int) -> bool:
        if not self.mask[uidx, iidx]:
            return False
        self.mask[uidx, iidx] = False
        self.sizes[uidx] -= 1
        return True

    def size(self, uidx: int) -> int:
        return int(self.sizes[uidx])

    def is_empty(self, uidx: int) -> bool:
        return self.sizes[uidx] == 0
