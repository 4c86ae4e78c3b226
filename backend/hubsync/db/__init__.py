# Database configuration and session management
from .base import Base
from .session import get_async_engine, get_session_maker

__all__ = ["Base", "get_async_engine", "get_session_maker"]
