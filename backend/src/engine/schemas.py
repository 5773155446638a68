from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Stage1Response(BaseModel):
    model: str
    response: str


class Stage2Ranking(BaseModel):
    model: str
    ranking: str
    parsed_ranking: List[str] = Field(default_factory=list)


class Stage3Response(BaseModel):
    model: str
    response: str


class AggregateRanking(BaseModel):
    model: str
    average_rank: float
    rankings_count: int


class CouncilMetadata(BaseModel):
    """Request-scoped data derived during a run. Returned to the caller, never stored."""

    label_to_model: Dict[str, str] = Field(default_factory=dict)
    aggregate_rankings: List[AggregateRanking] = Field(default_factory=list)


class CouncilResult(BaseModel):
    stage1: List[Stage1Response]
    stage2: List[Stage2Ranking]
    stage3: Stage3Response
    metadata: CouncilMetadata


class CouncilEvent(BaseModel):
    type: str
    data: Any = None
    metadata: Optional[CouncilMetadata] = None
