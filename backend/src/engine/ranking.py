"""Peer-ranking parsing and aggregation for Stage 2."""

from __future__ import annotations

import re
from collections import defaultdict
from typing import Dict, Iterable, List

from .schemas import AggregateRanking, Stage2Ranking

FINAL_RANKING_MARKER = "FINAL RANKING:"

_NUMBERED_RE = re.compile(r"\d+\.\s*(Response [A-Z])")
_LABEL_RE = re.compile(r"Response [A-Z]")


def parse_ranking_from_text(ranking_text: str) -> List[str]:
    """
    Extract the ordered response labels from a judge's free-form output.

    Only the text after `FINAL RANKING:` is considered when the marker is present
    (and nothing else is scanned if that section holds no labels);
    otherwise the whole text is scanned. Numbered entries ("1. Response C") win over
    bare mentions. Printed rank numbers are ignored, order of appearance is the
    ranking. Repeated labels are kept.
    """
    if not ranking_text:
        return []

    if FINAL_RANKING_MARKER in ranking_text:
        # With repeated markers only the text up to the next marker counts.
        section = ranking_text.split(FINAL_RANKING_MARKER)[1]
    else:
        section = ranking_text

    numbered = _NUMBERED_RE.findall(section)
    if numbered:
        return numbered

    return _LABEL_RE.findall(section)


def calculate_aggregate_rankings(
    stage2_results: Iterable[Stage2Ranking], label_to_model: Dict[str, str]
) -> List[AggregateRanking]:
    model_positions: dict[str, list[int]] = defaultdict(list)

    for ranking in stage2_results:
        for position, label in enumerate(ranking.parsed_ranking, start=1):
            model = label_to_model.get(label)
            if model is not None:
                model_positions[model].append(position)

    aggregate = [
        AggregateRanking(
            model=model,
            average_rank=sum(positions) / len(positions),
            rankings_count=len(positions),
        )
        for model, positions in model_positions.items()
    ]
    # Stable sort: ties keep first-mention order.
    aggregate.sort(key=lambda x: x.average_rank)
    return aggregate
