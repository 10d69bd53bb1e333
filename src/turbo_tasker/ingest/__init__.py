from .channel import EventChannel, EventKind, Subscription

__all__ = ["EventChannel", "EventKind", "Subscription"]
