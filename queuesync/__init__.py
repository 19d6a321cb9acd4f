"""Real-time queue synchronization with optimistic join/leave."""

__version__ = "0.1.0"
