"""Exceptions raised by dep-inspector.

Only :class:`FatalGraphError` aborts a run.  Every other failure degrades a
field of the report to absent or zero (see the diagnostic records in
:mod:`dep_inspector.models`).
"""

from typing import Optional


class DepInspectorError(Exception):
    """Base class for dep-inspector errors."""


class FatalGraphError(DepInspectorError):
    """The dependency graph could not be loaded at all."""


class EnrichmentQueryFailure(DepInspectorError):
    """An external metrics query failed (network, auth, rate limit, timeout)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        retryable: bool = True,
        retry_after: Optional[float] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable
        self.retry_after = retry_after
