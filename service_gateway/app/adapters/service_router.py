"""
Service router adapters for the Widget Gateway.

The gateway only knows that a router resolves ``(service, endpoint, params)``
to a JSON-serializable value asynchronously and may raise. ``DemoServiceRouter``
backs the built-in widgets with synthetic trucking data.
"""

import random
import time
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List
import sys
import os

# Add shared directory to path
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..', '..'))

from shared.errors import UnknownEndpointError, UpstreamFailureError
from shared.logging import get_logger


class ServiceRouter(ABC):
    """Interface for backend dispatch."""

    @abstractmethod
    async def route(self, service_name: str, endpoint: str, params: Dict[str, Any]) -> Any:
        raise NotImplementedError


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _days_ago(days: int) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=days)


def _millis() -> int:
    return int(time.time() * 1000)


ROUTES = [
    {"id": 1, "from": "Mumbai", "to": "Delhi", "rate": 45000, "fuel": 8500, "distance": 1420, "trend": "up"},
    {"id": 2, "from": "Delhi", "to": "Kolkata", "rate": 38000, "fuel": 7200, "distance": 1450, "trend": "stable"},
    {"id": 3, "from": "Chennai", "to": "Bangalore", "rate": 25000, "fuel": 4800, "distance": 350, "trend": "down"},
    {"id": 4, "from": "Pune", "to": "Hyderabad", "rate": 32000, "fuel": 6100, "distance": 560, "trend": "up"},
    {"id": 5, "from": "Ahmedabad", "to": "Mumbai", "rate": 28000, "fuel": 5300, "distance": 530, "trend": "stable"},
]


def rate_history(base_rate: int, days: int = 30) -> List[Dict[str, Any]]:
    """Daily rates within +/-5% of the base rate, oldest first."""
    return [
        {
            "date": _days_ago(days - 1 - i).date().isoformat(),
            "rate": round(base_rate * (0.95 + random.random() * 0.1)),
        }
        for i in range(days)
    ]


def predict_rate(current_rate: int, trend: str) -> int:
    multiplier = {"up": 1.05, "down": 0.95}.get(trend, 1.0)
    return round(current_rate * multiplier)


def trend_series(base_value: float, months: int = 6) -> List[Dict[str, Any]]:
    """Monthly values within +/-10% of the base value, oldest first."""
    return [
        {
            "month": _days_ago((months - 1 - i) * 30).strftime("%Y-%m"),
            "value": round(base_value * (0.9 + random.random() * 0.2)),
        }
        for i in range(months)
    ]


class DemoServiceRouter(ServiceRouter):
    """Routes widget calls to in-process mock trucking microservices."""

    def __init__(self):
        self.logger = get_logger("gateway.router")
        self._services: Dict[str, Callable[[str, Dict[str, Any]], Awaitable[Any]]] = {
            "rateIntelligence": self._rate_intelligence,
            "analytics": self._analytics,
            "operations": self._operations,
            "market": self._market,
            "orderSaga": self._order_saga,
        }

    @property
    def services(self) -> List[str]:
        return list(self._services.keys())

    async def route(self, service_name: str, endpoint: str, params: Dict[str, Any]) -> Any:
        handler = self._services.get(service_name)
        if handler is None:
            raise UpstreamFailureError(f"Microservice '{service_name}' not available")

        self.logger.debug("Routing to microservice", service=service_name, endpoint=endpoint)
        return await handler(endpoint, params)

    async def _rate_intelligence(self, endpoint: str, params: Dict[str, Any]) -> Any:
        updated = _now_iso()
        routes = [dict(route, lastUpdated=updated) for route in ROUTES]

        if endpoint == "current":
            return {
                "routes": routes,
                "summary": {
                    "totalRoutes": len(routes),
                    "avgRate": sum(r["rate"] for r in routes) / len(routes),
                    "trending": sum(1 for r in routes if r["trend"] == "up"),
                },
                "timestamp": updated,
            }
        if endpoint == "history":
            return {
                "data": [dict(r, history=rate_history(r["rate"])) for r in routes],
                "period": "30days",
                "totalDataPoints": len(routes) * 30,
            }
        if endpoint == "predict":
            return {
                "predictions": [
                    {
                        "routeId": r["id"],
                        "route": f"{r['from']} → {r['to']}",
                        "currentRate": r["rate"],
                        "predictedRate": predict_rate(r["rate"], r["trend"]),
                        "confidence": 0.85,
                        "factors": ["fuel_price", "demand", "seasonal"],
                    }
                    for r in routes
                ],
                "modelVersion": "2.1.0",
                "lastTrained": "2024-01-15",
            }
        if endpoint == "routes":
            return {
                "availableRoutes": [
                    {
                        "id": r["id"],
                        "name": f"{r['from']} → {r['to']}",
                        "distance": r["distance"],
                        # 60 km/h average
                        "avgTime": round(r["distance"] / 60),
                        "difficulty": "high" if r["distance"] > 1000 else "medium",
                    }
                    for r in routes
                ],
                "totalRoutes": len(routes),
            }
        raise UnknownEndpointError(f"Rate intelligence endpoint '{endpoint}' not found")

    async def _analytics(self, endpoint: str, params: Dict[str, Any]) -> Any:
        if endpoint == "dashboard":
            return {
                "revenue": {"total": 2850000, "monthly": 475000, "growth": 12.3},
                "operations": {"totalTrips": 1247, "completedTrips": 1198, "onTimeDelivery": 96.2},
                "efficiency": {"fuelEfficiency": 8.4, "vehicleUtilization": 84.7, "costPerKm": 18.45},
                "timestamp": _now_iso(),
            }
        if endpoint == "trends":
            return {
                "revenue": trend_series(2850000),
                "volume": trend_series(1247),
                "efficiency": trend_series(84.7),
                "period": "6months",
            }
        if endpoint == "kpi":
            return {
                "financial": {"profitMargin": 35.4, "revenueGrowth": 12.3, "costReduction": 8.1},
                "operational": {"onTimeDelivery": 96.2, "customerSatisfaction": 4.6, "vehicleUtilization": 84.7},
                "market": {"marketShare": 18.4, "competitiveRank": 3, "brandIndex": 847},
            }
        if endpoint == "revenue":
            return {
                "current": 2850000,
                "target": 3000000,
                "achievement": 95.0,
                "breakdown": {"longHaul": 1710000, "shortHaul": 855000, "specialCargo": 285000},
                "forecast": 3200000,
            }
        raise UnknownEndpointError(f"Analytics endpoint '{endpoint}' not found")

    async def _operations(self, endpoint: str, params: Dict[str, Any]) -> Any:
        if endpoint == "fleet":
            return {
                "vehicles": {"total": 156, "active": 132, "maintenance": 12, "idle": 12},
                "utilization": 84.7,
                "efficiency": {"fuelConsumption": 8.4, "maintenanceCost": 12500, "driverSatisfaction": 4.2},
            }
        if endpoint == "routes":
            return {
                "active": 45,
                "completed": 23,
                "planned": 18,
                "performance": {"avgDistance": 485, "avgDuration": 8.5, "onTimeRate": 96.2},
            }
        if endpoint == "efficiency":
            return {
                "fuel": {"efficiency": 8.4, "cost": 125000, "savings": 15000},
                "time": {"avgDeliveryTime": 8.5, "plannedVsActual": 98.2, "delays": 12},
                "cost": {"perKm": 18.45, "perTrip": 8950, "optimization": 12.3},
            }
        if endpoint == "tracking":
            return {
                "realTime": {"vehiclesTracked": 132, "lastUpdate": _now_iso(), "accuracy": 99.8},
                "alerts": [
                    {"type": "delay", "vehicle": "TN-456", "route": "Mumbai-Delhi", "delay": 45},
                    {"type": "maintenance", "vehicle": "KA-789", "due": "tomorrow"},
                ],
            }
        raise UnknownEndpointError(f"Operations endpoint '{endpoint}' not found")

    async def _market(self, endpoint: str, params: Dict[str, Any]) -> Any:
        if endpoint == "position":
            return {"marketShare": 18.4, "ranking": 3, "brandIndex": 847, "competitorCount": 12, "growth": 15.2}
        if endpoint == "competitors":
            return {
                "competitors": [
                    {"name": "TruckCorp", "share": 22.1, "trend": "stable", "strength": "network"},
                    {"name": "LogiMax", "share": 19.8, "trend": "down", "strength": "pricing"},
                    {"name": "HQ Trucking", "share": 18.4, "trend": "up", "strength": "technology"},
                    {"name": "FreightPro", "share": 15.2, "trend": "up", "strength": "service"},
                ],
                "analysis": "Growing market share through technology innovation",
            }
        if endpoint == "trends":
            return {
                "demandGrowth": 8.5,
                "priceInflation": 4.2,
                "newEntrants": 3,
                "marketSize": 1250000000,
                "opportunities": ["electric_vehicles", "last_mile_delivery", "cold_chain"],
            }
        if endpoint == "forecast":
            return {
                "nextQuarter": {"marketGrowth": 12.5, "demandIncrease": 18.3, "priceStability": "moderate"},
                "risks": ["fuel_volatility", "regulation_changes"],
                "opportunities": ["route_optimization", "fleet_expansion"],
            }
        raise UnknownEndpointError(f"Market endpoint '{endpoint}' not found")

    async def _order_saga(self, endpoint: str, params: Dict[str, Any]) -> Any:
        now = datetime.now(timezone.utc)
        stamp = _millis()

        if endpoint == "quote":
            query = params.get("query") or {}
            return {
                "quoteId": f"QT-{stamp}",
                "route": query.get("route", "Mumbai-Delhi"),
                "rate": 45000,
                "validUntil": (now + timedelta(days=1)).isoformat(),
                "steps": ["quote_generated", "awaiting_confirmation"],
                "nextStep": "assign",
            }
        if endpoint == "assign":
            return {
                "assignmentId": f"AS-{stamp}",
                "vehicleId": "TN-456",
                "driverId": "DR-123",
                "status": "assigned",
                "steps": ["quote_confirmed", "vehicle_assigned"],
                "nextStep": "track",
            }
        if endpoint == "track":
            return {
                "trackingId": f"TR-{stamp}",
                "status": "in_transit",
                "location": {"lat": 19.0760, "lng": 72.8777},
                "progress": 45,
                "steps": ["departed", "in_transit"],
                "nextStep": "pod",
            }
        if endpoint == "pod":
            return {
                "podId": f"POD-{stamp}",
                "deliveredAt": now.isoformat(),
                "signature": "digital_signature_hash",
                "status": "delivered",
                "steps": ["delivered", "pod_captured"],
                "nextStep": "invoice",
            }
        if endpoint == "invoice":
            return {
                "invoiceId": f"INV-{stamp}",
                "amount": 45000,
                "dueDate": (now + timedelta(days=30)).isoformat(),
                "status": "generated",
                "steps": ["invoice_generated", "payment_pending"],
                "nextStep": "complete",
            }
        raise UnknownEndpointError(f"Order saga endpoint '{endpoint}' not found")
