# API endpoint routers
from . import health, sync, sync_status

__all__ = ["health", "sync", "sync_status"]
