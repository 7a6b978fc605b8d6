"""
Exception types raised by the form engine.

Only programmer errors and unrecoverable data failures are exceptions.
Empty, single and multiple candidate sets are normal cascade outcomes.
"""

from typing import List, Optional


class FormCascadeError(Exception):
    """Base class for all engine errors."""
    pass


class DataUnavailableError(FormCascadeError):
    """Raised when every candidate URL for a dataset failed."""

    def __init__(self, dataset: str, urls: List[str], last_error: Optional[BaseException] = None):
        self.dataset = dataset
        self.urls = list(urls)
        self.last_error = last_error
        detail = f": {last_error}" if last_error else ""
        super().__init__(
            f"Dataset '{dataset}' could not be loaded from {len(self.urls)} URL(s){detail}"
        )


class UnknownFieldError(FormCascadeError, KeyError):
    """Raised when a store is asked about a field that was never declared."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Field not declared in form schema: {name}")

    def __str__(self) -> str:
        return self.args[0]


class ConfigError(FormCascadeError):
    """Raised when a configuration file or object cannot be understood."""
    pass
