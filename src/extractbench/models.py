from __future__ import annotations

from enum import Enum
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict

from extractbench.schema import UserProfile

DEFAULT_PROVIDER = "Default"


class ModelPricing(BaseModel):
    """Pricing per 1M tokens (USD)."""

    model_config = ConfigDict(frozen=True)

    input: float
    output: float


class ModelConfiguration(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: str
    provider: str | None = None
    pricing: ModelPricing | None = None

    @property
    def display_provider(self) -> str:
        return self.provider or DEFAULT_PROVIDER

    @classmethod
    def from_spec(cls, spec: str, pricing: ModelPricing | None = None) -> "ModelConfiguration":
        """Parse ``model`` or ``model@provider``."""
        model, _, provider = spec.partition("@")
        model = model.strip()
        if not model:
            raise ValueError(f"Invalid model spec: {spec!r}")
        return cls(model=model, provider=provider.strip() or None, pricing=pricing)


class TestCase(BaseModel):
    __test__ = False

    model_config = ConfigDict(frozen=True)

    description: str
    content: str
    validator: Callable[[UserProfile], bool] | None = None


class Usage(BaseModel):
    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = 0
    completion_tokens: int = 0

    def __add__(self, other: "Usage") -> "Usage":
        return Usage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
        )


class CaseStatus(str, Enum):
    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    FAILURE = "failure"


class CaseOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: CaseStatus
    description: str
    duration_ms: float
    usage: Usage | None = None
    error: str | None = None  # classified error name on failure


class SuiteSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: str
    provider: str
    success_rate: float  # percent of all test cases
    successful: int
    validation_errors: int
    failures: int
    avg_time_sec: float
    total_time_sec: float
    input_tokens: int
    output_tokens: int
    cost_usd: float

    @property
    def total_cases(self) -> int:
        return self.successful + self.validation_errors + self.failures


class BenchmarkReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    suites: list[SuiteSummary]


class ProviderRouting(BaseModel):
    """Strict single-provider routing (no fallbacks)."""

    model_config = ConfigDict(frozen=True)

    order: list[str]
    allow_fallbacks: bool = False


class ExtractionRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: str
    messages: list[dict[str, str]]
    temperature: float = 0.0
    routing: ProviderRouting | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": list(self.messages),
            "temperature": self.temperature,
            "response_format": {"type": "json_object"},
        }
        if self.routing is not None:
            payload["provider"] = self.routing.model_dump()
        return payload


class Extraction(BaseModel):
    """Structured value returned by the extraction service."""

    value: UserProfile
    usage: Usage | None = None
