from .app import create_app, get_tracking_service

__all__ = ["create_app", "get_tracking_service"]
