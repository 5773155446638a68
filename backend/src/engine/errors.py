"""Typed failures for model invocation and council runs."""

from __future__ import annotations


class ModelQueryError(RuntimeError):
    """A single model invocation failed. Recovered per model inside a stage."""

    def __init__(self, model: str, message: str):
        super().__init__(f"{model}: {message}")
        self.model = model


class ModelTimeoutError(ModelQueryError):
    pass


class ModelTransportError(ModelQueryError):
    pass


class ModelUpstreamError(ModelQueryError):
    def __init__(self, model: str, status_code: int, body: str):
        super().__init__(model, f"OpenRouter HTTP {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class ModelProtocolError(ModelQueryError):
    pass


class CouncilError(RuntimeError):
    """Fatal council failure. No stage results accompany it."""

    code = "council_failed"

    def __init__(self, message: str, *, stage: str):
        super().__init__(message)
        self.stage = stage


class NoCouncilResponsesError(CouncilError):
    code = "no_council_responses"


class ChairmanSynthesisError(CouncilError):
    code = "chairman_synthesis_failed"


class CouncilTimeoutError(CouncilError):
    code = "council_timeout"
