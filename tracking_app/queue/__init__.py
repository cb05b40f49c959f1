"""
Request-scoped hit queue.
"""

from .event_queue import EventQueue

__all__ = [
    "EventQueue",
]
