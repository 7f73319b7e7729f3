"""Usage scores per tag."""
from typing import Iterable, Mapping, Optional

# score delta applied to an entity's tags for each usage event
SCORE_EVENTS: dict[str, int] = {
    "habit_completed": 1,
    "habit_uncompleted": -1,
    "reward_redeemed": 2,
    "entity_saved": 1,
}


def bump_tag_scores(
    current: Optional[Mapping[str, int]],
    tags: Optional[Iterable[str]],
    amount: int = 1,
) -> dict[str, int]:
    """Return a new score map with ``amount`` added to each listed tag.

    Scores are floored at zero. Tags not listed keep their score, and the input
    mapping is never modified.
    """
    scores = dict(current or {})
    for tag in tags or []:
        scores[tag] = max(0, scores.get(tag, 0) + amount)
    return scores
