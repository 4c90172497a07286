"""
Non-fatal diagnostics emitted during plan construction and runs.
"""

from __future__ import annotations

import logging
from typing import Any, NamedTuple

logger = logging.getLogger(__name__)

VALIDATION_WARNING = "validation_warning"
UNDECLARED_READ = "undeclared_read"


class Diagnostic(NamedTuple):
    """
    Warning record surfaced to the caller.

    Attributes:
        kind: Diagnostic type (e.g., 'validation_warning', 'undeclared_read')
        source: Module name or wiring target the diagnostic is about
        message: Human-readable description
        meta: Optional structured details (e.g., the undeclared fields)
    """

    kind: str
    source: str
    message: str
    meta: dict[str, Any] | None = None


def emit(
    sink: list[Diagnostic],
    kind: str,
    source: str,
    message: str,
    meta: dict[str, Any] | None = None,
) -> Diagnostic:
    """Append a diagnostic to ``sink`` and log it as a warning."""
    diag = Diagnostic(kind, source, message, meta)
    sink.append(diag)
    logger.warning("[%s] %s", source, message)
    return diag
