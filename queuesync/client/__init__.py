"""Queue server HTTP client."""

from queuesync.client.queue_api import QueueApiClient

__all__ = ["QueueApiClient"]
