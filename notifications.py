"""In-memory SSE fan-out for match events.

Every open stream owns one ``asyncio.Queue``; a user may have several. Events are
``{"type": ..., "payload": {"matchId": ..., ...}}`` and are dropped for users
that are not connected; delivery is best effort and never raises into the
request that produced the event.
"""
import asyncio
import json
from typing import Any, Iterable

import structlog
from structlog.contextvars import get_contextvars

logger = structlog.get_logger(__name__)

NEW_MATCH = "new_match"
JOB_SHARED = "job_shared"
JOB_INTEREST = "job_interest"
INTERVIEW_SCHEDULED = "interview_scheduled"


class ConnectionManager:
    def __init__(self):
        # user_id -> one queue per open stream
        self.active_connections: dict[int, list[asyncio.Queue]] = {}

    async def connect(self, user_id: int) -> asyncio.Queue:
        """Registers a new stream for the user and returns its queue."""
        queue = asyncio.Queue()
        self.active_connections.setdefault(user_id, []).append(queue)
        logger.info(
            "SSE connection established",
            user_id=user_id,
            streams=len(self.active_connections[user_id]),
        )
        return queue

    def disconnect(self, user_id: int, queue: asyncio.Queue):
        """Removes one stream's queue; the user's other streams stay open."""
        queues = self.active_connections.get(user_id, [])
        if queue in queues:
            queues.remove(queue)
            logger.info("SSE connection closed", user_id=user_id, streams=len(queues))
        if not queues:
            self.active_connections.pop(user_id, None)

    def is_connected(self, user_id: int) -> bool:
        return user_id in self.active_connections

    def _message(self, event_type: str, payload: dict[str, Any]) -> dict[str, str]:
        body: dict[str, Any] = {"type": event_type, "payload": payload}
        req_id = get_contextvars().get("request_id")
        if req_id:
            body["request_id"] = req_id
        return {"event": event_type, "data": json.dumps(body, default=str)}

    async def publish(self, user_ids: Iterable[int], event_type: str, payload: dict[str, Any]) -> int:
        """Queue ``event_type`` on every open stream of each user. Returns how many were queued."""
        delivered = 0
        message = self._message(event_type, payload)
        for user_id in set(user_ids):
            queues = self.active_connections.get(user_id)
            if not queues:
                logger.debug("Skipping SSE for disconnected user", user_id=user_id, sse_event=event_type)
                continue
            for queue in queues:
                try:
                    queue.put_nowait(message)
                    delivered += 1
                except asyncio.QueueFull:
                    logger.warning("SSE queue full, dropping event", user_id=user_id, sse_event=event_type)
        logger.info(
            "Published SSE event",
            sse_event=event_type,
            match_id=payload.get("matchId"),
            delivered=delivered,
        )
        return delivered


manager = ConnectionManager()
