"""
Performance budget checks for widget responses.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List

from .widget_registry import Budget


class ViolationKind(str, Enum):
    """Which budget ceiling a response exceeded."""

    SIZE_EXCEEDED = "size_exceeded"
    TIME_EXCEEDED = "time_exceeded"


@dataclass(frozen=True)
class Violation:
    kind: ViolationKind
    actual: float
    limit: int

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "actual": self.actual, "limit": self.limit}


def payload_size_bytes(payload: Any) -> int:
    """Byte length of the JSON serialization of a payload."""
    return len(json.dumps(payload, default=str).encode("utf-8"))


class BudgetChecker:
    """Evaluates a completed response against a widget budget.

    Violations are reported to the caller and never abort the request.
    """

    def check(self, payload: Any, budget: Budget, elapsed_millis: float) -> List[Violation]:
        violations: List[Violation] = []

        size = payload_size_bytes(payload)
        if size > budget.max_response_bytes:
            violations.append(Violation(ViolationKind.SIZE_EXCEEDED, size, budget.max_response_bytes))

        if elapsed_millis > budget.max_response_millis:
            violations.append(Violation(ViolationKind.TIME_EXCEEDED, elapsed_millis, budget.max_response_millis))

        return violations
