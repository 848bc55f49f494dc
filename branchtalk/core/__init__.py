"""
Core module.

Exports:
- EventBus, Event: Event system
- ContextEvent, DialogueEvent: Event types exchanged by sessions and contexts
- DialogueConfig, configure_logging: Configuration
"""

from branchtalk.core.events import EventBus, Event, ContextEvent, DialogueEvent
from branchtalk.core.config import DialogueConfig, configure_logging

__all__ = [
    # Events
    "EventBus",
    "Event",
    "ContextEvent",
    "DialogueEvent",
    # Config
    "DialogueConfig",
    "configure_logging",
]
