"""Min-max rescaling of one cycle's raw node scores."""

from typing import List

from ..types import NodeScore


def normalize_scores(scores: List[NodeScore], min_score: int, max_score: int) -> List[NodeScore]:
    """Map raw scores affinely onto ``[min_score, max_score]``.

    The lowest raw score maps to ``min_score`` and the highest to
    ``max_score`` using truncating integer division. When every raw score is
    equal, all outputs are ``min_score``. Returns a new list in input order.
    """
    if not scores:
        return []

    lowest = min(s.score for s in scores)
    highest = max(s.score for s in scores)

    old_range = highest - lowest
    new_range = max_score - min_score
    if old_range == 0:
        return [NodeScore(s.name, min_score) for s in scores]

    # (score - lowest) * new_range is non-negative, so // truncates
    return [
        NodeScore(s.name, (s.score - lowest) * new_range // old_range + min_score)
        for s in scores
    ]
