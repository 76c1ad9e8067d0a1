"""
Widget Gateway: the single ingress point between client widgets and backend
services.

State is owned by the event loop that runs the gateway. Registry, cache,
metrics and event channel are only touched through synchronous calls, and
the router call is the one suspension point inside ``handle_request``, so
two concurrent misses for the same key may both dispatch.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, TYPE_CHECKING
import sys
import os

# Add shared directory to path
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from shared.errors import GatewayException, UpstreamFailureError
from shared.logging import get_logger

from .adapters.service_router import ServiceRouter
from .caching.response_cache import MISS, ResponseCache, monotonic_millis
from .domain.budget import BudgetChecker, payload_size_bytes
from .domain.performance import PerformanceMetrics
from .domain.widget_registry import Budget, WidgetRegistry
from .events.channel import EventChannel, WIDGET_ERROR, WIDGET_RESPONSE

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_GATEWAY_LABEL = "HQ-Trucking-v1.0"


@dataclass
class RequestContext:
    """One inbound widget call."""
    widget_id: str
    endpoint: str
    method: str = "GET"
    query: Dict[str, Any] = field(default_factory=dict)
    body: Optional[Any] = None
    start_timestamp: float = 0.0


class WidgetGateway:
    """Validates, caches, dispatches and budgets widget requests."""

    def __init__(
        self,
        registry: WidgetRegistry,
        router: ServiceRouter,
        *,
        cache: Optional[ResponseCache] = None,
        performance: Optional[PerformanceMetrics] = None,
        events: Optional[EventChannel] = None,
        budget_checker: Optional[BudgetChecker] = None,
        metrics: Optional["MetricsCollector"] = None,
        clock: Optional[Callable[[], float]] = None,
        gateway_label: str = DEFAULT_GATEWAY_LABEL,
    ):
        self.registry = registry
        self.router = router
        self.cache = cache if cache is not None else ResponseCache()
        self.performance = performance if performance is not None else PerformanceMetrics()
        self.events = events if events is not None else EventChannel()
        self.budget_checker = budget_checker or BudgetChecker()
        self.metrics = metrics
        self.gateway_label = gateway_label
        self._clock = clock or monotonic_millis
        self.logger = get_logger("gateway.widgets")

    async def handle_request(
        self,
        widget_id: str,
        endpoint: str,
        method: str = "GET",
        query: Optional[Dict[str, Any]] = None,
        body: Optional[Any] = None,
    ) -> Dict[str, Any]:
        """Serve one widget call and return the response envelope.

        Never raises for request-level failures: unknown widgets, unknown
        endpoints and upstream errors all come back as error envelopes.
        """
        ctx = RequestContext(
            widget_id=widget_id,
            endpoint=endpoint,
            method=method,
            query=query or {},
            body=body,
            start_timestamp=self._clock(),
        )
        request_count = self.performance.record_request()

        try:
            descriptor = self.registry.lookup(ctx.widget_id)

            cache_key = self.cache.make_key(ctx.widget_id, ctx.endpoint, ctx.query)
            cached = self.cache.get(cache_key, descriptor.cache_ttl_seconds)
            if cached is not MISS:
                self.performance.record_cache_hit()
                elapsed = self._elapsed(ctx)
                self._record_outcome(ctx.widget_id, "cache_hit", elapsed)
                self.logger.info("Cache hit", widget_id=ctx.widget_id, endpoint=ctx.endpoint)
                return self._success(cached, True, elapsed, request_count)

            dispatch_started = self._clock()
            try:
                data = await self.router.route(
                    descriptor.service_name,
                    ctx.endpoint,
                    {"method": ctx.method, "query": ctx.query, "body": ctx.body, "widgetId": ctx.widget_id},
                )
            except GatewayException:
                raise
            except Exception as exc:
                raise UpstreamFailureError(str(exc), {"service": descriptor.service_name}) from exc

            self._check_budget(ctx, data, descriptor.budget, self._clock() - dispatch_started)

            self.cache.put(cache_key, data)
            if self.metrics:
                self.metrics.set_gauge("widget_cache_entries", self.cache.size())

            elapsed = self._elapsed(ctx)
            self.performance.record_latency(elapsed)
            self._record_outcome(ctx.widget_id, "success", elapsed)

            self.events.publish(WIDGET_RESPONSE, {
                "widgetId": ctx.widget_id,
                "endpoint": ctx.endpoint,
                "success": True,
                "responseTimeMs": elapsed,
            })

            self.logger.info(
                "Widget request served",
                widget_id=ctx.widget_id,
                endpoint=ctx.endpoint,
                response_time_ms=round(elapsed, 2)
            )
            return self._success(data, False, elapsed, request_count)

        except GatewayException as exc:
            return self._fail(ctx, exc, request_count)
        except Exception as exc:
            # Unserializable payloads surface here from the budget/envelope step
            return self._fail(ctx, UpstreamFailureError(str(exc), {"error_type": type(exc).__name__}), request_count)

    def _fail(self, ctx: RequestContext, exc: GatewayException, request_count: int) -> Dict[str, Any]:
        """Log, count and publish a failed request, then build its envelope."""
        elapsed = self._elapsed(ctx)
        self.logger.error(
            "Widget request failed",
            widget_id=ctx.widget_id,
            endpoint=ctx.endpoint,
            code=exc.code,
            error=exc.message,
            response_time_ms=round(elapsed, 2)
        )
        if self.metrics:
            self.metrics.increment_counter("widget_requests_total", widget=ctx.widget_id, outcome="error")
            self.metrics.record_error(exc.code)

        self.events.publish(WIDGET_ERROR, {
            "widgetId": ctx.widget_id,
            "endpoint": ctx.endpoint,
            "error": exc.message,
            "code": exc.code,
            "responseTimeMs": elapsed,
        })
        return self._failure(exc, elapsed, request_count)

    def _check_budget(self, ctx: RequestContext, data: Any, budget: Budget, elapsed_millis: float) -> None:
        for violation in self.budget_checker.check(data, budget, elapsed_millis):
            self.logger.warning(
                "Performance budget exceeded",
                widget_id=ctx.widget_id,
                endpoint=ctx.endpoint,
                kind=violation.kind.value,
                actual=violation.actual,
                limit=violation.limit
            )
            if self.metrics:
                self.metrics.increment_counter(
                    "budget_violations_total",
                    widget=ctx.widget_id,
                    kind=violation.kind.value,
                )

    def _record_outcome(self, widget_id: str, outcome: str, elapsed_millis: float) -> None:
        if not self.metrics:
            return
        self.metrics.increment_counter("widget_requests_total", widget=widget_id, outcome=outcome)
        self.metrics.observe_histogram("widget_response_seconds", elapsed_millis / 1000, widget=widget_id)
        if outcome == "cache_hit":
            self.metrics.increment_counter("widget_cache_hits_total", widget=widget_id)

    def _elapsed(self, ctx: RequestContext) -> float:
        return self._clock() - ctx.start_timestamp

    def _success(self, data: Any, cached: bool, elapsed: float, request_count: int) -> Dict[str, Any]:
        return {
            "success": True,
            "data": data,
            "meta": {
                "cached": cached,
                "responseTimeMs": round(elapsed, 3),
                "sizeBytes": payload_size_bytes(data),
                "requestCount": request_count,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "gateway": self.gateway_label,
            },
        }

    def _failure(self, exc: GatewayException, elapsed: float, request_count: int) -> Dict[str, Any]:
        return {
            "success": False,
            "error": exc.message,
            "code": exc.code,
            "meta": {
                "responseTimeMs": round(elapsed, 3),
                "requestCount": request_count,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "gateway": self.gateway_label,
            },
        }

    def stats(self) -> Dict[str, Any]:
        """Read-only snapshot for the stats endpoint."""
        return {
            "registeredWidgets": self.registry.widget_ids(),
            "cacheSize": self.cache.size(),
            "totalRequests": self.performance.total_requests,
            "performance": self.performance.snapshot(self.cache.size()),
            "cache": self.cache.stats(),
            "events": {
                "published": self.events.published_events,
                "dropped": self.events.dropped_events,
                "subscribers": self.events.subscriber_count(),
            },
        }
