"""3-stage LLM Council orchestration."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Dict, List, Optional, Tuple, TypeVar

from ..config import CouncilConfig
from .errors import ChairmanSynthesisError, CouncilError, CouncilTimeoutError, ModelQueryError, NoCouncilResponsesError
from .openrouter import Invoker, query_model, query_models_parallel
from .prompts import anonymize_responses, build_chairman_prompt, build_ranking_prompt, build_title_prompt
from .ranking import calculate_aggregate_rankings, parse_ranking_from_text
from .schemas import (
    CouncilEvent,
    CouncilMetadata,
    CouncilResult,
    Stage1Response,
    Stage2Ranking,
    Stage3Response,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TITLE = "New Conversation"


class CouncilStage(str, Enum):
    STAGE1 = "stage1"
    STAGE2 = "stage2"
    STAGE3 = "stage3"
    DONE = "done"
    FAILED = "failed"


class CouncilOrchestrator:
    """
    Runs one council deliberation per call; holds no state between runs.

    Stage 1 fans the query out to every council model, Stage 2 has the same models
    rank the anonymized answers, Stage 3 asks the chairman for a synthesis.
    Individual model failures inside Stage 1 and 2 are dropped. An empty Stage 1,
    a failed chairman call or an expired run deadline abort the whole run.
    """

    def __init__(self, config: CouncilConfig | None = None, *, invoke: Invoker = query_model):
        self._config = config if config is not None else CouncilConfig.from_env()
        self._invoke = invoke

    @property
    def config(self) -> CouncilConfig:
        return self._config

    async def stage1_collect_responses(self, user_query: str) -> List[Stage1Response]:
        messages = [{"role": "user", "content": user_query}]
        replies = await query_models_parallel(
            self._config.council_models,
            messages,
            timeout_seconds=self._config.model_timeout_seconds,
            invoke=self._invoke,
        )
        return [Stage1Response(model=model, response=reply.content) for model, reply in replies.items()]

    async def stage2_collect_rankings(
        self, user_query: str, stage1_results: List[Stage1Response]
    ) -> Tuple[List[Stage2Ranking], Dict[str, str]]:
        labeled, label_to_model = anonymize_responses(stage1_results)
        ranking_prompt = build_ranking_prompt(user_query, labeled)

        replies = await query_models_parallel(
            self._config.council_models,
            [{"role": "user", "content": ranking_prompt}],
            timeout_seconds=self._config.model_timeout_seconds,
            invoke=self._invoke,
        )

        stage2_results = [
            Stage2Ranking(
                model=model,
                ranking=reply.content,
                parsed_ranking=parse_ranking_from_text(reply.content),
            )
            for model, reply in replies.items()
        ]
        return stage2_results, label_to_model

    async def stage3_synthesize_final(
        self,
        user_query: str,
        stage1_results: List[Stage1Response],
        stage2_results: List[Stage2Ranking],
    ) -> Stage3Response:
        chairman = self._config.chairman_model
        prompt = build_chairman_prompt(user_query, stage1_results, stage2_results)
        try:
            reply = await self._invoke(
                chairman,
                [{"role": "user", "content": prompt}],
                timeout_seconds=self._config.model_timeout_seconds,
            )
        except ModelQueryError as e:
            raise ChairmanSynthesisError(
                f"chairman synthesis failed: {e}", stage=CouncilStage.STAGE3.value
            ) from e
        return Stage3Response(model=chairman, response=reply.content)

    async def generate_conversation_title(self, user_query: str) -> str:
        try:
            reply = await self._invoke(
                self._config.title_model,
                [{"role": "user", "content": build_title_prompt(user_query)}],
                timeout_seconds=self._config.title_timeout_seconds,
            )
        except ModelQueryError as e:
            logger.warning("Title generation failed: %s", e)
            return DEFAULT_TITLE

        title = reply.content.strip().strip("\"'")
        if not title:
            return DEFAULT_TITLE
        if len(title) > 50:
            title = title[:47] + "..."
        return title

    async def _within_deadline(self, aw: Awaitable[T], deadline: Optional[float], stage: CouncilStage) -> T:
        if deadline is None:
            return await aw
        remaining = deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            if asyncio.iscoroutine(aw):
                aw.close()
            raise CouncilTimeoutError(
                f"council run deadline passed before {stage.value}", stage=stage.value
            )
        try:
            return await asyncio.wait_for(aw, timeout=remaining)
        except asyncio.TimeoutError as e:
            raise CouncilTimeoutError(
                f"council run exceeded {self._config.run_timeout_seconds:g}s during {stage.value}",
                stage=stage.value,
            ) from e

    def _transition(self, current: CouncilStage, nxt: CouncilStage) -> CouncilStage:
        logger.info("Council stage %s -> %s", current.value, nxt.value)
        return nxt

    async def iter_council(self, user_query: str) -> AsyncIterator[CouncilEvent]:
        """
        Run all three stages, yielding an event as each one starts and completes.

        The last event has type "complete" and carries the `CouncilResult`. A fatal
        failure raises `CouncilError` instead, and no "complete" event is produced.
        """
        deadline: Optional[float] = None
        if self._config.run_timeout_seconds is not None:
            deadline = asyncio.get_running_loop().time() + self._config.run_timeout_seconds

        stage = CouncilStage.STAGE1
        try:
            yield CouncilEvent(type="stage1_start")
            stage1_results = await self._within_deadline(
                self.stage1_collect_responses(user_query), deadline, stage
            )
            if not stage1_results:
                raise NoCouncilResponsesError("no council model responded", stage=stage.value)
            yield CouncilEvent(type="stage1_complete", data=stage1_results)

            stage = self._transition(stage, CouncilStage.STAGE2)
            yield CouncilEvent(type="stage2_start")
            stage2_results, label_to_model = await self._within_deadline(
                self.stage2_collect_rankings(user_query, stage1_results), deadline, stage
            )
            if not stage2_results:
                logger.warning("No council model returned a ranking; continuing without peer rankings")
            metadata = CouncilMetadata(
                label_to_model=label_to_model,
                aggregate_rankings=calculate_aggregate_rankings(stage2_results, label_to_model),
            )
            yield CouncilEvent(type="stage2_complete", data=stage2_results, metadata=metadata)

            stage = self._transition(stage, CouncilStage.STAGE3)
            yield CouncilEvent(type="stage3_start")
            stage3_result = await self._within_deadline(
                self.stage3_synthesize_final(user_query, stage1_results, stage2_results), deadline, stage
            )
            yield CouncilEvent(type="stage3_complete", data=stage3_result)

            stage = self._transition(stage, CouncilStage.DONE)
            yield CouncilEvent(
                type="complete",
                data=CouncilResult(
                    stage1=stage1_results,
                    stage2=stage2_results,
                    stage3=stage3_result,
                    metadata=metadata,
                ),
            )
        except CouncilError as e:
            self._transition(stage, CouncilStage.FAILED)
            logger.error("Council run failed (%s): %s", e.code, e)
            raise

    async def run_full_council(self, user_query: str) -> CouncilResult:
        result: Any = None
        async for event in self.iter_council(user_query):
            if event.type == "complete":
                result = event.data
        return result
