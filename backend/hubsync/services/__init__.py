# Business logic services
from .checkpoint_store import (
    CheckpointStrategy,
    DomainRepository,
    DurableCheckpoint,
    NoOpCheckpoint,
    get_checkpoint_strategy,
    get_domain_repository,
)
from .sink import EventSink, HttpGoalSink, LoggingSink, get_event_sink

__all__ = [
    "CheckpointStrategy",
    "DomainRepository",
    "DurableCheckpoint",
    "NoOpCheckpoint",
    "get_checkpoint_strategy",
    "get_domain_repository",
    "EventSink",
    "HttpGoalSink",
    "LoggingSink",
    "get_event_sink",
]
