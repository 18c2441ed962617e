"""Error reporting for the tempest-live command line."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

__all__ = [
    "CATEGORY_STATUS_CODES",
    "CliError",
    "ErrorPayload",
    "build_error_payload",
    "log_cli_error",
]


CATEGORY_STATUS_CODES: Mapping[str, int] = {
    "runtime": 1,
    "usage": 2,
    "io": 3,
    "not_found": 4,
    "auth": 5,
}

_DEFAULT_CATEGORY = "runtime"

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ErrorPayload:
    """Structured description of a CLI failure."""

    status_code: int
    category: str
    message: str
    context: Mapping[str, Any]

    def as_dict(self) -> dict[str, Any]:
        return {
            "status_code": self.status_code,
            "category": self.category,
            "message": self.message,
            "context": dict(self.context),
        }


def _scalar_context(context: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    # Keep log records JSON-friendly.
    if not context:
        return {}
    return {
        str(key): value if isinstance(value, (str, int, float, bool)) or value is None else str(value)
        for key, value in context.items()
    }


def build_error_payload(
    message: str,
    *,
    category: str = _DEFAULT_CATEGORY,
    status_code: Optional[int] = None,
    context: Optional[Mapping[str, Any]] = None,
) -> ErrorPayload:
    category = category or _DEFAULT_CATEGORY
    if status_code is None:
        status_code = CATEGORY_STATUS_CODES.get(category, CATEGORY_STATUS_CODES[_DEFAULT_CATEGORY])
    return ErrorPayload(
        status_code=status_code,
        category=category,
        message=message,
        context=_scalar_context(context),
    )


def log_cli_error(
    payload: ErrorPayload,
    *,
    target: Optional[logging.Logger] = None,
    exc_info: Optional[BaseException] = None,
) -> None:
    """Emit ``payload`` as a single structured ``cli.error`` record."""

    (target or logger).error(
        payload.message,
        extra={
            "event": "cli.error",
            "category": payload.category,
            "status_code": payload.status_code,
            "context": dict(payload.context),
        },
        exc_info=exc_info,
    )


class CliError(RuntimeError):
    """Failure reported to the user with an exit status derived from its category."""

    def __init__(
        self,
        message: str,
        *,
        category: str = _DEFAULT_CATEGORY,
        status_code: Optional[int] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.payload = build_error_payload(
            message,
            category=category,
            status_code=status_code,
            context=context,
        )
        self.logged = False

    @property
    def category(self) -> str:
        return self.payload.category

    @property
    def status_code(self) -> int:
        return self.payload.status_code

    @property
    def context(self) -> Mapping[str, Any]:
        return self.payload.context
