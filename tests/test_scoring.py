import pytest

from catto.core.enums import Judgement
from catto.verification import score_for_level


@pytest.mark.parametrize(
    "level, score, judgement",
    [
        (0, 90, Judgement.HIGH),
        (1, 90, Judgement.HIGH),
        (2, 70, Judgement.MODERATE),
        (3, 40, Judgement.LOW),
        (4, 15, Judgement.LOW),
        (5, 15, Judgement.LOW),
    ],
)
def test_score_for_level(level, score, judgement):
    assert score_for_level(level) == (score, judgement)
