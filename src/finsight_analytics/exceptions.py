# FinSight Analytics - Financial analytics engine for SMB bookkeeping
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Typed errors raised by the analytics components.

Every error carries:
- a machine-readable ``code`` (stable, safe to expose through an API),
- a ``category`` telling the calling layer which kind of response to build:

    client_error       the request itself is wrong (bad snapshot, bad horizon)
    insufficient_data  the request is fine but there is not enough history yet
    data_error         the stored data breaks an invariant (upstream bug)

Hierarchy
---------

    AnalyticsError
    +-- InvalidInput (also a ValueError)
    |   +-- InvalidHorizon
    +-- InsufficientData
    |   +-- InsufficientSampleSize
    +-- InvariantViolation

``InvalidInput`` also derives from ``ValueError`` so that callers which
already catch ``ValueError`` around parsing code keep working.
"""

from typing import Any, Optional

CLIENT_ERROR = "client_error"
INSUFFICIENT_DATA = "insufficient_data"
DATA_ERROR = "data_error"


class AnalyticsError(Exception):
    """Base class for all analytics errors."""

    code: str = "ANALYTICS_ERROR"
    category: str = DATA_ERROR

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "category": self.category,
            "message": self.message,
            "details": dict(self.details),
        }


class InvalidInput(AnalyticsError, ValueError):
    """Malformed or missing input fields. Nothing is computed."""

    code = "INVALID_INPUT"
    category = CLIENT_ERROR

    def __init__(self, message: str, field: Optional[str] = None, **details: Any):
        super().__init__(message, field=field, **details)
        self.field = field


class InvalidHorizon(InvalidInput):
    """A forecast was requested for a non-positive number of months."""

    code = "INVALID_HORIZON"

    def __init__(self, horizon: Any) -> None:
        super().__init__(
            f"Forecast horizon must be a positive number of months, got {horizon!r}.",
            field="horizon",
            horizon=horizon,
        )
        self.horizon = horizon


class InsufficientData(AnalyticsError):
    """Not enough history to produce a meaningful result."""

    code = "INSUFFICIENT_DATA"
    category = INSUFFICIENT_DATA

    def __init__(self, message: str, required: int = 1, actual: int = 0, **details):
        super().__init__(message, required=required, actual=actual, **details)
        self.required = required
        self.actual = actual


class InsufficientSampleSize(InsufficientData):
    """A statistical population is below the minimum size."""

    code = "INSUFFICIENT_SAMPLE"

    def __init__(self, required: int, actual: int) -> None:
        super().__init__(
            f"At least {required} transactions are required for anomaly "
            f"detection, got {actual}.",
            required=required,
            actual=actual,
        )


class InvariantViolation(AnalyticsError):
    """Stored data breaks an invariant enforced at creation time."""

    code = "INVARIANT_VIOLATION"
    category = DATA_ERROR
