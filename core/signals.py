"""
Minimal synchronous signal used for change notifications
(settings updates, WordPress configuration re-discovery).
"""

import logging

logger = logging.getLogger("signals")


class Signal:
    def __init__(self):
        self.callbacks = []

    def connect(self, callback):
        if callback not in self.callbacks:
            self.callbacks.append(callback)

    def disconnect(self, callback):
        """Remove a callback from the signal."""
        if callback in self.callbacks:
            self.callbacks.remove(callback)

    def disconnect_all(self):
        """Remove all callbacks."""
        self.callbacks.clear()

    def emit(self, *args, **kwargs):
        """Call every connected callback; one failing listener does not stop the rest."""
        for cb in self.callbacks[:]:
            try:
                cb(*args, **kwargs)
            except Exception as e:
                logger.error(f"Signal callback {getattr(cb, '__name__', cb)} failed: {e}")
