from __future__ import annotations

from pydantic_settings import BaseSettings

from extractbench.models import ModelConfiguration, ModelPricing

OPENROUTER_BASE = "https://openrouter.ai/api/v1"


class Settings(BaseSettings):
    openrouter_api_key: str
    base_url: str = OPENROUTER_BASE
    max_concurrency: int = 1
    timeout_seconds: float = 30.0
    max_retries: int = 2
    repair_retries: int = 3
    http_timeout_seconds: float = 60.0
    referer: str = "catalysto.ru"
    title: str = "Benchmark structured out"

    model_config = {
        "env_prefix": "EXTRACTBENCH_",
        "env_file": ".env",
    }


def _config(model: str, provider: str | None, input_cost: float, output_cost: float) -> ModelConfiguration:
    return ModelConfiguration(
        model=model,
        provider=provider,
        pricing=ModelPricing(input=input_cost, output=output_cost),
    )


DEFAULT_CONFIGURATIONS: tuple[ModelConfiguration, ...] = (
    _config("z-ai/glm-4.5-air", "GMICloud", 0.20, 1.10),
    _config("openai/gpt-5-nano", None, 0.05, 0.40),
    _config("openai/gpt-5-mini", None, 0.25, 0.025),
    _config("openai/gpt-oss-20b", "groq", 0.10, 0.50),
    _config("openai/gpt-oss-120b", "groq", 0.15, 0.75),
    _config("google/gemini-2.5-flash-lite", "google-vertex", 0.10, 0.40),
    _config("google/gemini-2.5-flash", "google-vertex/global", 0.30, 2.50),
    _config("x-ai/grok-3-mini", "xai", 0.30, 0.50),
    _config("deepseek/deepseek-r1-0528", "targon/fp8", 0.70, 2.50),
    _config("qwen/qwen3-235b-a22b", "deepinfra/fp8", 0.30, 3.00),
    _config("qwen/qwq-32b", "deepinfra", 0.075, 0.15),
)
