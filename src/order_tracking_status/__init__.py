# src/order_tracking_status/__init__.py
from .models import TrackingResult
from .services.resolution import TrackingResolutionService

__all__ = [
    "TrackingResolutionService",
    "TrackingResult",
]
