"""
Widget Gateway service package for the HQ Trucking platform.

The gateway is the only path from client widgets to backend data. It:
- Validates widget ids against a startup registry
- Caches responses per request with a per-widget TTL
- Checks response size/time budgets and logs violations
- Publishes lifecycle events on an in-process channel

Structure:
- app.main: FastAPI app, routes, and service wiring.
- app.gateway: Request orchestration.
- app.adapters: Service router interface and demo microservices.
- app.caching: Bounded FIFO response cache.
- app.domain: Registry, budgets, and request statistics.
- app.events: Publish/subscribe channel.
"""
