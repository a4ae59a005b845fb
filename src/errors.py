from __future__ import annotations

from typing import Optional


class ScraperError(Exception):
    """Base fault for a scrape run.

    Carries the operation that failed and the value it was working on so the
    runner can print a diagnosable line without verbose flags.
    """

    exit_code = 3

    def __init__(self, message: str, *, operation: str = "scrape", target: Optional[str] = None) -> None:
        super().__init__(message)
        self.operation = operation
        self.target = target

    def describe(self) -> str:
        where = f" ({self.target})" if self.target else ""
        return f"{self.operation} failed{where}: {self}"


class ConfigurationError(ScraperError):
    """Required input missing or invalid. Fatal, never retried."""

    exit_code = 1

    def __init__(self, message: str, *, operation: str = "config", target: Optional[str] = None) -> None:
        super().__init__(message, operation=operation, target=target)


class AuthenticationError(ScraperError):
    """Login form missing, or submission never reached the listing."""

    exit_code = 2

    def __init__(self, message: str, *, operation: str = "login", target: Optional[str] = None) -> None:
        super().__init__(message, operation=operation, target=target)


class NavigationTimeout(ScraperError):
    """A required element or card collection did not appear in time."""


class ExtractionError(ScraperError):
    """One card had an unexpected structure. Tolerated per card."""

    def __init__(self, message: str, *, operation: str = "extract", target: Optional[str] = None) -> None:
        super().__init__(message, operation=operation, target=target)


class PersistenceError(ScraperError):
    """A durable write failed. Reported, never fatal to the loop."""

    def __init__(self, message: str, *, operation: str = "persist", target: Optional[str] = None) -> None:
        super().__init__(message, operation=operation, target=target)
