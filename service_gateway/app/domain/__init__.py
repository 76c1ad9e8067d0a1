"""
Domain types for the Widget Gateway.

Widget registry entries, performance budgets, and in-memory request
statistics. Nothing here performs I/O.
"""

from .budget import BudgetChecker, Violation, ViolationKind
from .performance import PerformanceMetrics
from .widget_registry import Budget, WidgetDescriptor, WidgetRegistry, default_registry

__all__ = [
    "Budget",
    "BudgetChecker",
    "PerformanceMetrics",
    "Violation",
    "ViolationKind",
    "WidgetDescriptor",
    "WidgetRegistry",
    "default_registry",
]
