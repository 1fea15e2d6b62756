"""Map the verified maximum match level to a novelty score and judgement."""

from catto.core.enums import Judgement

# Highest verified level -> (novelty score, judgement)
_LEVEL_TABLE: dict[int, tuple[int, Judgement]] = {
    4: (15, Judgement.LOW),
    3: (40, Judgement.LOW),
    2: (70, Judgement.MODERATE),
}
_NOVEL = (90, Judgement.HIGH)


def score_for_level(level: int) -> tuple[int, Judgement]:
    """Levels above 4 count as 4; levels of 1 or below count as novel."""
    return _LEVEL_TABLE.get(min(level, 4), _NOVEL)
