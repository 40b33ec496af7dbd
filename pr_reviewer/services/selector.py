"""
Reviewer Candidate Selection

Picks reviewer candidates for a pull request from the author's team.

Design Decisions:
- The eligible pool comes from storage; the random pick happens here so the
  policy does not depend on a database's random ordering
- Uniform random choice without replacement (partial Fisher-Yates shuffle)
- A pool smaller than the limit is not an error: everything is returned
"""

import random
from typing import Iterable, List, Optional, Union

from pr_reviewer.logging_config import get_logger
from pr_reviewer.storage.base import PRTransaction, UserStorage


def pick_random(pool: List[str], limit: int, rng: random.Random) -> List[str]:
    """
    Choose ``limit`` distinct items uniformly at random.

    Only the first ``limit`` positions are shuffled, which is enough for an
    unbiased sample. The input list is not modified.
    """
    if limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")
    items = list(pool)
    count = min(limit, len(items))
    for i in range(count):
        j = rng.randrange(i, len(items))
        items[i], items[j] = items[j], items[i]
    return items[:count]


class CandidateSelector:
    """
    Selects active teammates of an author as reviewer candidates.

    Usage:
        selector = CandidateSelector(user_storage)
        reviewers = await selector.select("u1", exclude_ids={"u1"}, limit=2)
    """

    def __init__(
        self,
        user_storage: UserStorage,
        rng: Optional[random.Random] = None,
        logger=None
    ):
        self._users = user_storage
        self._rng = rng or random.SystemRandom()
        self._logger = logger or get_logger(__name__)

    async def select(
        self,
        author_id: str,
        exclude_ids: Iterable[str],
        limit: int,
        source: Optional[Union[UserStorage, PRTransaction]] = None
    ) -> List[str]:
        """
        Pick up to ``limit`` candidates from the author's team.

        Args:
            author_id: Author whose team is the candidate pool
            exclude_ids: Ids that must not be picked (always includes the author)
            limit: Maximum number of candidates
            source: Where to read the pool from; pass the open transaction when
                selecting inside one. Defaults to the user storage.

        Returns:
            Between 0 and ``limit`` distinct user ids, in no particular order

        Raises:
            ValueError: If limit is negative
        """
        if limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")
        if limit == 0:
            return []

        excluded = set(exclude_ids)
        excluded.add(author_id)

        pool_source = source if source is not None else self._users
        pool = await pool_source.get_active_teammate_ids(author_id, excluded)
        # adapters may return duplicates or skip exclusions
        pool = [user_id for user_id in dict.fromkeys(pool) if user_id not in excluded]

        chosen = pick_random(pool, limit, self._rng)

        self._logger.debug(
            "Selected reviewer candidates",
            author_id=author_id,
            pool_size=len(pool),
            limit=limit,
            selected=chosen
        )

        return chosen
