"""
Shared Core Module
==================

Event system, configuration, error taxonomy and logging setup.
"""

# Event System
from .event_bus import EventBus, EventPayload
from . import events

# Errors
from .errors import ApiError, DecodeError, ErrorInfo, NetworkError, ServerError

# Service Registry
from .service_registry import register_cleanup_handler, run_cleanup_handlers

# Configuration
from .configuration import (
    ConfigManager,
    SystemConfig,
    ValidationLevel,
    get_config,
    get_config_manager,
)
from .logging_setup import configure_logging

__all__ = [
    # Event System
    "EventBus",
    "EventPayload",
    "events",
    # Errors
    "ApiError",
    "DecodeError",
    "ErrorInfo",
    "NetworkError",
    "ServerError",
    # Service Registry
    "register_cleanup_handler",
    "run_cleanup_handlers",
    # Configuration
    "ConfigManager",
    "SystemConfig",
    "ValidationLevel",
    "get_config",
    "get_config_manager",
    "configure_logging",
]
