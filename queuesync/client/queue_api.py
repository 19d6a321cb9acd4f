"""Queue server HTTP API: the poll endpoint and the queue commands.

    GET  /api/queues                      -> [queue, ...]
    POST /api/queues/{id}/join            -> {success, message}
    POST /api/queues/{id}/leave           -> {success, message}
    POST /api/queues/{id}/fill?reshuffle  -> {success, message, addedPlayers}
    POST /api/queues/{id}/clear           -> {success, message}
    POST /api/queues/{id}/launch          -> {success, message, matchId}

Failed commands answer with ``{"error": "..."}``.
"""

from __future__ import annotations

from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from queuesync.logging_config import get_logger
from queuesync.schemas.common import CommandResult, ErrorBody, LaunchResult
from queuesync.schemas.queue import QUEUE_LIST_ADAPTER, Queue
from queuesync.utils.errors import CommandError, RateLimitedError, SnapshotFetchError
from queuesync.utils.http_client import AsyncHttpClient
from queuesync.utils.json_utils import json_loads

logger = get_logger(__name__)

ResultT = TypeVar("ResultT", bound=CommandResult)


def _error_message(response: httpx.Response, default: str) -> str:
    """Server ``{error}`` text, or ``default`` when the body has none."""
    try:
        return ErrorBody.model_validate(json_loads(response.content)).error
    except ValueError:
        return default


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class QueueApiClient:
    """Typed access to the queue endpoints.

    Reads go through the retrying GET of ``AsyncHttpClient``; commands are
    posted once and every failure, HTTP or transport, becomes a
    ``CommandError``.
    """

    def __init__(self, http: AsyncHttpClient, queues_path: str = "/api/queues"):
        self._http = http
        self._queues_path = queues_path.rstrip("/")

    async def fetch_queues(self, game_type: str | None = None) -> list[Queue]:
        """Fetch the full queue list.

        Raises:
            RateLimitedError: The endpoint answered 429
            SnapshotFetchError: Any other failure
        """
        params = {"gameType": game_type} if game_type else None
        try:
            response = await self._http.get(
                self._queues_path,
                params=params,
                headers={"Cache-Control": "no-cache"},
            )
        except httpx.HTTPError as e:
            raise SnapshotFetchError(f"Queue list request failed: {e}") from e

        if response.status_code == httpx.codes.TOO_MANY_REQUESTS:
            raise RateLimitedError(retry_after=_retry_after(response))
        if not response.is_success:
            raise SnapshotFetchError(
                _error_message(response, "Failed to fetch queues"),
                status_code=response.status_code,
            )

        try:
            return QUEUE_LIST_ADAPTER.validate_python(json_loads(response.content))
        except (ValueError, ValidationError) as e:
            raise SnapshotFetchError(
                f"Invalid queue list: {e}", status_code=response.status_code
            ) from e

    async def join(self, queue_id: str) -> CommandResult:
        return await self._command("join", queue_id)

    async def leave(self, queue_id: str) -> CommandResult:
        return await self._command("leave", queue_id)

    async def fill(self, queue_id: str, reshuffle: bool = False) -> CommandResult:
        """Fill the queue with test players; ``reshuffle`` replaces existing ones."""
        params = {"reshuffle": "true"} if reshuffle else None
        return await self._command("fill", queue_id, params=params)

    async def clear(self, queue_id: str) -> CommandResult:
        return await self._command("clear", queue_id)

    async def launch(self, queue_id: str) -> LaunchResult:
        """Draft the active players into a match."""
        return await self._command("launch", queue_id, result_type=LaunchResult)

    async def _command(
        self,
        command: str,
        queue_id: str,
        *,
        params: dict[str, Any] | None = None,
        result_type: type[ResultT] = CommandResult,
    ) -> ResultT:
        url = f"{self._queues_path}/{quote(queue_id, safe='')}/{command}"
        try:
            response = await self._http.post(url, params=params)
        except httpx.HTTPError as e:
            logger.warning("command_unreachable", command=command, queue_id=queue_id, error=str(e))
            raise CommandError(command, queue_id, f"Failed to {command} queue: {e}") from e

        if not response.is_success:
            message = _error_message(response, f"Failed to {command} queue")
            logger.info(
                "command_rejected",
                command=command,
                queue_id=queue_id,
                status=response.status_code,
                error=message,
            )
            raise CommandError(command, queue_id, message, status_code=response.status_code)

        try:
            body = json_loads(response.content) if response.content else {}
            return result_type.model_validate(body)
        except (ValueError, ValidationError) as e:
            raise CommandError(
                command,
                queue_id,
                f"Unexpected {command} response: {e}",
                status_code=response.status_code,
            ) from e
