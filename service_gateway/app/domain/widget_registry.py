"""
Widget registry for the Widget Gateway.

Every widget reaches backend data through the gateway only, so a request for
a widget id missing from this registry is rejected before any cache lookup or
dispatch happens.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple
import sys
import os

# Add shared directory to path
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..', '..'))

from shared.errors import UnknownWidgetError, ValidationError
from shared.logging import get_logger


@dataclass(frozen=True)
class Budget:
    """Declared ceiling on response size and latency for a widget."""
    max_response_bytes: int
    max_response_millis: int

    def __post_init__(self):
        if self.max_response_bytes <= 0 or self.max_response_millis <= 0:
            raise ValidationError(
                "Budget limits must be positive",
                {"max_response_bytes": self.max_response_bytes, "max_response_millis": self.max_response_millis},
            )

    def to_dict(self) -> Dict[str, int]:
        return {
            "maxResponseBytes": self.max_response_bytes,
            "maxResponseMillis": self.max_response_millis,
        }


@dataclass(frozen=True)
class WidgetDescriptor:
    """Registry entry describing how a widget maps onto a backend service."""
    service_name: str
    allowed_endpoints: FrozenSet[str]
    cache_ttl_seconds: int
    budget: Budget

    def __post_init__(self):
        if self.cache_ttl_seconds <= 0:
            raise ValidationError(
                "Cache TTL must be a positive number of seconds",
                {"cache_ttl_seconds": self.cache_ttl_seconds},
            )
        # Accept any iterable of endpoint names
        object.__setattr__(self, "allowed_endpoints", frozenset(self.allowed_endpoints))

    def to_dict(self) -> Dict[str, object]:
        return {
            "service": self.service_name,
            "endpoints": sorted(self.allowed_endpoints),
            "cacheTtlSeconds": self.cache_ttl_seconds,
            "budget": self.budget.to_dict(),
        }


class WidgetRegistry:
    """Holds one descriptor per widget id, populated at startup."""

    def __init__(self, widgets: Optional[Dict[str, WidgetDescriptor]] = None):
        self.logger = get_logger("gateway.registry")
        self._widgets: Dict[str, WidgetDescriptor] = {}
        for widget_id, descriptor in (widgets or {}).items():
            self.register(widget_id, descriptor)

    def register(self, widget_id: str, descriptor: WidgetDescriptor) -> None:
        """Insert or overwrite a widget descriptor."""
        if not widget_id:
            raise ValidationError("Widget id must be a non-empty string")

        self._widgets[widget_id] = descriptor
        self.logger.debug("Widget registered", widget_id=widget_id, service=descriptor.service_name)

    def lookup(self, widget_id: str) -> WidgetDescriptor:
        """Return the descriptor for a widget or raise UnknownWidgetError."""
        try:
            return self._widgets[widget_id]
        except KeyError:
            raise UnknownWidgetError(widget_id) from None

    def widget_ids(self) -> List[str]:
        return list(self._widgets.keys())

    def items(self) -> Iterator[Tuple[str, WidgetDescriptor]]:
        return iter(self._widgets.items())

    def __contains__(self, widget_id: object) -> bool:
        return widget_id in self._widgets

    def __len__(self) -> int:
        return len(self._widgets)


# widget id -> (backend service, endpoints, cache TTL seconds)
DEFAULT_WIDGETS: Dict[str, Tuple[str, Tuple[str, ...], int]] = {
    "rates": ("rateIntelligence", ("current", "history", "predict", "routes"), 300),
    "analytics": ("analytics", ("dashboard", "trends", "kpi", "revenue"), 600),
    "operations": ("operations", ("fleet", "routes", "efficiency", "tracking"), 180),
    "market": ("market", ("position", "competitors", "trends", "forecast"), 900),
    "saga": ("orderSaga", ("quote", "assign", "track", "pod", "invoice"), 60),
}


def build_descriptor(
    service_name: str,
    endpoints: Iterable[str],
    cache_ttl_seconds: int,
    max_response_bytes: int = 150000,
    max_response_millis: int = 2000,
) -> WidgetDescriptor:
    """Convenience constructor for a descriptor with its budget."""
    return WidgetDescriptor(
        service_name=service_name,
        allowed_endpoints=frozenset(endpoints),
        cache_ttl_seconds=cache_ttl_seconds,
        budget=Budget(max_response_bytes, max_response_millis),
    )


def default_registry(max_response_bytes: int = 150000, max_response_millis: int = 2000) -> WidgetRegistry:
    """Build the registry of built-in trucking widgets."""
    registry = WidgetRegistry()
    for widget_id, (service_name, endpoints, ttl) in DEFAULT_WIDGETS.items():
        registry.register(
            widget_id,
            build_descriptor(service_name, endpoints, ttl, max_response_bytes, max_response_millis),
        )

    registry.logger.info("Registered widgets", count=len(registry), widgets=registry.widget_ids())
    return registry
