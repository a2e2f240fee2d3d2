from __future__ import annotations


class ExtractBenchError(Exception):
    """Base class for benchmark errors."""


class ExtractionTimeout(ExtractBenchError):
    """The extraction call did not finish within its deadline."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"Operation timed out after {timeout:g}s")
        self.timeout = timeout


class SchemaConformanceError(ExtractBenchError):
    """The response could not be coerced into the target schema after repair attempts."""

    def __init__(self, message: str, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts


class TransportError(ExtractBenchError):
    """Network or provider-side failure."""
