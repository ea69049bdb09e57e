"""Error taxonomy for the refresh pipeline.

Per-item errors are never raised past the orchestrator; they are converted
into rejection records whose ``reason`` is the error class name.
"""

from __future__ import annotations


class CareerEventsError(Exception):
    """Base class for all pipeline errors."""

    @property
    def reason(self) -> str:
        return type(self).__name__


class FetchError(CareerEventsError):
    """A scrape request timed out or returned a non-2xx status."""

    def __init__(self, url: str, message: str, status: int | None = None) -> None:
        super().__init__(f"{url}: {message}")
        self.url = url
        self.message = message
        self.status = status


class ProviderFetchError(CareerEventsError):
    """A provider's listing page could not be fetched or parsed."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"[{provider}] {message}")
        self.provider = provider


class StructuralValidationError(CareerEventsError):
    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors) or "structurally invalid")
        self.errors = list(errors)
        self.detail = str(self)


class LiveCheckFailure(CareerEventsError):
    def __init__(self, url: str, detail: str, status: int | None = None) -> None:
        super().__init__(f"{url}: {detail}")
        self.url = url
        self.detail = detail
        self.status = status


class ContentVerificationFailure(CareerEventsError):
    def __init__(self, url: str, detail: str) -> None:
        super().__init__(f"{url}: {detail}")
        self.url = url
        self.detail = detail


class OutputWriteError(CareerEventsError):
    """Published output could not be written. Aborts the run."""


class OutputReadError(CareerEventsError):
    """The published event set exists but cannot be read back."""


class ConfigurationError(CareerEventsError):
    """The run cannot start, e.g. no provider is enabled."""
