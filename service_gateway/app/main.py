"""
Widget Gateway service for the HQ Trucking platform.
"""

import sys
import os
from json import JSONDecodeError
from typing import Any, Dict, Optional

# Add shared directory to path
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from fastapi import Request
from fastapi.responses import JSONResponse

from shared.base_service import BaseService
from shared.errors import ValidationError, status_code_for
from shared.logging import set_widget_context

from .adapters.service_router import DemoServiceRouter, ServiceRouter
from .caching.response_cache import ResponseCache
from .domain.performance import PerformanceMetrics
from .domain.widget_registry import WidgetRegistry, default_registry
from .events.channel import EventChannel
from .gateway import WidgetGateway


class GatewayService(BaseService):
    """Widget Gateway service implementation."""

    def __init__(
        self,
        router: Optional[ServiceRouter] = None,
        registry: Optional[WidgetRegistry] = None,
    ):
        super().__init__("gateway", 3000)

        self.registry = registry or default_registry(
            max_response_bytes=self.config.default_budget_max_bytes,
            max_response_millis=self.config.default_budget_max_millis,
        )
        self.router = router or DemoServiceRouter()
        self.events = EventChannel(default_queue_size=self.config.event_queue_size)
        self.gateway = WidgetGateway(
            self.registry,
            self.router,
            cache=ResponseCache(max_entries=self.config.cache_max_entries),
            performance=PerformanceMetrics(window_size=self.config.metrics_window_size),
            events=self.events,
            metrics=self.metrics,
            gateway_label=self.config.gateway_label,
        )

        @self.app.on_event("startup")
        async def _startup():
            self.logger.info(
                "Widget gateway initialized",
                widgets=self.registry.widget_ids(),
                cache_max_entries=self.gateway.cache.max_entries,
            )

        self._setup_gateway_routes()
        self._setup_widget_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.gateway_service = self

    def _setup_gateway_routes(self):
        """Set up gateway metadata routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "gateway",
                "message": "HQ Trucking Platform - Widget Gateway",
                "version": "1.0.0"
            }

        @self.app.get("/api/v1/status")
        async def api_status():
            """API status endpoint."""
            return {
                "status": "operational",
                "version": "1.0.0",
                "gateway": self.config.gateway_label,
                "widgets": self.registry.widget_ids(),
            }

        @self.app.get("/api/stats")
        async def gateway_stats():
            """Gateway statistics snapshot."""
            return {"gateway": self.gateway.stats()}

        @self.app.get("/api/v1/widgets")
        async def widget_catalog():
            """Registered widgets with their endpoints, TTLs and budgets."""
            return {
                "count": len(self.registry),
                "widgets": {
                    widget_id: descriptor.to_dict()
                    for widget_id, descriptor in self.registry.items()
                },
            }

    def _setup_widget_routes(self):
        """Set up the widget ingress routes."""

        @self.app.get("/api/widget/{widget_id}/{endpoint}")
        async def get_widget(widget_id: str, endpoint: str, request: Request):
            """Serve a widget read through the gateway."""
            return await self._dispatch(widget_id, endpoint, request, body=None)

        @self.app.post("/api/widget/{widget_id}/{endpoint}")
        async def post_widget(widget_id: str, endpoint: str, request: Request):
            """Serve a widget command through the gateway."""
            body = await self._read_body(request)
            return await self._dispatch(widget_id, endpoint, request, body=body)

    def _read_query(self, request: Request) -> Dict[str, Any]:
        """Query parameters in arrival order; repeated keys collect into a list."""
        query: Dict[str, Any] = {}
        for key, value in request.query_params.multi_items():
            if key not in query:
                query[key] = value
            elif isinstance(query[key], list):
                query[key].append(value)
            else:
                query[key] = [query[key], value]
        return query

    async def _read_body(self, request: Request) -> Optional[Any]:
        raw = await request.body()
        if not raw:
            return None
        try:
            return await request.json()
        except (JSONDecodeError, UnicodeDecodeError) as exc:
            raise ValidationError("Request body must be valid JSON", {"error": str(exc)}) from exc

    async def _dispatch(self, widget_id: str, endpoint: str, request: Request, body: Optional[Any]) -> JSONResponse:
        set_widget_context(widget_id)
        query = self._read_query(request)

        envelope = await self.gateway.handle_request(
            widget_id,
            endpoint,
            method=request.method,
            query=query,
            body=body,
        )

        status_code = 200 if envelope["success"] else status_code_for(envelope.get("code"))
        return JSONResponse(status_code=status_code, content=envelope)


def create_app(router: Optional[ServiceRouter] = None):
    """Create FastAPI application."""
    service = GatewayService(router=router)
    return service.app


if __name__ == "__main__":
    service = GatewayService()
    service.run()
