"""
Gateway lifecycle events.

Publishing is non-blocking with at-most-once delivery per subscriber.
"""

from .channel import EventChannel, Subscription, WidgetEvent, WIDGET_ERROR, WIDGET_RESPONSE

__all__ = [
    "EventChannel",
    "Subscription",
    "WidgetEvent",
    "WIDGET_ERROR",
    "WIDGET_RESPONSE",
]
