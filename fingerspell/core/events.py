"""
Lightweight event bus for letter-stream and training notifications.

Lets UI, chat or logging code follow the recognizer without the tick loop
knowing about them.

Usage:
    bus = EventBus()
    bus.subscribe(Events.LETTER_EMITTED, my_handler)
    bus.emit(Events.LETTER_EMITTED, letter="A", text="HA")
"""

import time
import logging
import threading
from collections import defaultdict
from typing import Callable

logger = logging.getLogger(__name__)


class EventBus:
    """Thread-safe publish/subscribe event bus.

    Synchronous dispatch with priority ordering. A failing handler is
    logged and never interrupts the tick that emitted the event.
    """

    _instance = None

    def __new__(cls):
        """Singleton pattern, one bus per application."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._listeners = defaultdict(list)  # event_name -> [(priority, callback)]
        self._lock = threading.Lock()
        self._event_history = []
        self._max_history = 100
        self._initialized = True

    def subscribe(self, event_name: str, callback: Callable, priority: int = 0):
        """Register a listener for an event.

        Args:
            event_name: Event to listen for
            callback: Function to call. Receives **kwargs from emit().
            priority: Higher priority callbacks run first (default 0)
        """
        with self._lock:
            self._listeners[event_name].append((priority, callback))
            self._listeners[event_name].sort(key=lambda x: -x[0])
        logger.debug("Subscribed to '%s': %s (priority=%d)",
                     event_name, getattr(callback, "__name__", repr(callback)), priority)

    def unsubscribe(self, event_name: str, callback: Callable):
        """Remove a listener for an event."""
        with self._lock:
            self._listeners[event_name] = [
                (p, cb) for p, cb in self._listeners[event_name] if cb is not callback
            ]

    def emit(self, event_name: str, **kwargs):
        """Emit an event to all registered listeners.

        Args:
            event_name: Event name to emit
            **kwargs: Data passed to all listeners
        """
        with self._lock:
            listeners = list(self._listeners.get(event_name, []))

        self._event_history.append({
            "event": event_name,
            "time": time.time(),
            "data_keys": list(kwargs.keys()),
        })
        if len(self._event_history) > self._max_history:
            self._event_history = self._event_history[-self._max_history:]

        for priority, callback in listeners:
            try:
                callback(**kwargs)
            except Exception as e:
                logger.error("Event handler error [%s -> %s]: %s",
                             event_name, getattr(callback, "__name__", repr(callback)), e)

    def clear(self, event_name: str = None):
        """Remove all listeners, optionally for a specific event."""
        with self._lock:
            if event_name:
                self._listeners.pop(event_name, None)
            else:
                self._listeners.clear()

    @property
    def listener_count(self) -> int:
        """Total number of registered listeners."""
        with self._lock:
            return sum(len(cbs) for cbs in self._listeners.values())

    def get_history(self, last_n: int = 10) -> list:
        """Get recent event history."""
        return self._event_history[-last_n:]

    def reset(self):
        """Reset singleton state (for testing)."""
        with self._lock:
            self._listeners.clear()
        self._event_history.clear()


# =============================================================================
# Standard Event Names (constants to avoid typos)
# =============================================================================

class Events:
    """Standard event names used throughout the system."""

    # Letter stream
    HAND_DETECTED = "hand_detected"
    HAND_LOST = "hand_lost"
    LETTER_STABLE = "letter_stable"
    LETTER_EMITTED = "letter_emitted"
    TEXT_COMMITTED = "text_committed"

    # Session lifecycle
    SESSION_STARTED = "session_started"
    SESSION_STOPPED = "session_stopped"

    # Training
    SAMPLE_ADDED = "sample_added"
    RECORDING_STARTED = "recording_started"
    RECORDING_PROGRESS = "recording_progress"
    RECORDING_COMPLETE = "recording_complete"
    RECORDING_CANCELLED = "recording_cancelled"
    SAMPLES_CLEARED = "samples_cleared"
    STORE_PERSISTENCE_FAILED = "store_persistence_failed"
