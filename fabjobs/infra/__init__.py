"""
Infrastructure module - settings, logging, persistence and broadcast.
"""

from .settings import Settings, load_settings, get_project_root
from .logging_config import setup_logging, job_log_context
from .persistence import PersistenceAdapter
from .broadcast import InMemoryBroadcaster, WebhookBroadcaster, FanoutBroadcaster

__all__ = [
    "Settings",
    "load_settings",
    "get_project_root",
    "setup_logging",
    "job_log_context",
    "PersistenceAdapter",
    "InMemoryBroadcaster",
    "WebhookBroadcaster",
    "FanoutBroadcaster",
]
