"""
Diagnostics sink — where operational failures are recorded.

The sink is fire-and-forget. Executors call it through safe_record(), so a
broken sink shows up in the log but never replaces the error being raised.
"""

from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)

# Operation category attached to every record from this package.
WORK_WITH_DATABASE = "WORK_WITH_DATABASE"


class DiagnosticsSink(Protocol):
    def record(
        self,
        failure: BaseException,
        operation_category: str,
        context_tag: str,
        detail: str,
    ) -> None: ...


class LoggingDiagnosticsSink:
    """Default sink: one ERROR record with the traceback attached."""

    def __init__(self, logger_name: str = "playground_store.diagnostics") -> None:
        self._logger = logging.getLogger(logger_name)

    def record(
        self,
        failure: BaseException,
        operation_category: str,
        context_tag: str,
        detail: str,
    ) -> None:
        self._logger.error(
            "%s [%s] %s: %s",
            operation_category,
            context_tag,
            detail,
            failure,
            exc_info=(type(failure), failure, failure.__traceback__),
        )


def safe_record(
    sink: DiagnosticsSink,
    failure: BaseException,
    context_tag: str,
    detail: str,
    operation_category: str = WORK_WITH_DATABASE,
) -> None:
    """Hand a failure to the sink; a raising sink is logged, not propagated."""
    try:
        sink.record(failure, operation_category, context_tag, detail)
    except Exception:
        logger.exception("Diagnostics sink %r failed while recording %s", sink, context_tag)
