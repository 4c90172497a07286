"""
Connector type tags for declared module inputs and outputs.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ConnectorType(Enum):
    """
    Coarse shape of a wired value, checked at wiring time.

    Attributes:
        SCALAR: A single number
        FLAT_MAPPING: A mapping of keys to scalars (e.g., per-region values)
        NESTED_MAPPING: A mapping of keys to mappings (e.g., region -> source -> value)
    """

    SCALAR = "scalar"
    FLAT_MAPPING = "flat-mapping"
    NESTED_MAPPING = "nested-mapping"

    @classmethod
    def parse(cls, tag: ConnectorType | str) -> ConnectorType:
        """Accept an enum member or its string tag."""
        if isinstance(tag, cls):
            return tag
        try:
            return cls(tag)
        except ValueError:
            valid = ", ".join(t.value for t in cls)
            raise ValueError(
                f"Unknown connector type '{tag}' (expected one of: {valid})"
            ) from None

    def zero(self) -> Any:
        """Zero value used as the first-period default of lagged inputs."""
        if self is ConnectorType.SCALAR:
            return 0.0
        return {}
