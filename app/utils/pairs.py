from typing import Tuple


def normalize_pair(user_id_a: int, user_id_b: int) -> Tuple[int, int]:
    """
    Order two user ids so the same unordered pair always maps to (smaller, greater).

    Every reader and writer of pair-keyed rows (friendships, conversations) goes
    through this function, so (A, B) and (B, A) hit the same unique key.
    """
    if user_id_a <= user_id_b:
        return user_id_a, user_id_b
    return user_id_b, user_id_a
