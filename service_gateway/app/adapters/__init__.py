"""
Adapters package for the Widget Gateway.

Contains the service router interface the gateway dispatches through and
the demo router backed by mock trucking microservices. Routers raise
shared errors (UnknownEndpointError, UpstreamFailureError) on failure.
"""

from .service_router import DemoServiceRouter, ServiceRouter

__all__ = [
    "DemoServiceRouter",
    "ServiceRouter",
]
