"""
Routes for the sandbox node.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

from hcsclient.client.domain.entities import Timestamp
from hcsclient.common.exceptions import NotFoundError, ValidationError
from hcsclient.common.models import (
    QueryCostResponse,
    Receipt,
    SignedTransaction,
    TopicInfo,
    TopicInfoRequest,
    TransactionResponse,
)

from .ledger import SandboxLedger

STREAM_POLL_INTERVAL = 0.05


class SandboxRoutes:
    """Handles FastAPI routes for the sandbox node."""

    def __init__(self, ledger: SandboxLedger, keepalive_interval: float):
        self.ledger = ledger
        self.keepalive_interval = keepalive_interval

    def router(self) -> APIRouter:
        """Build the API router; mounted under the API prefix."""
        router = APIRouter()
        router.get("/network/health")(self.health)
        router.post("/transactions", response_model=TransactionResponse)(self.submit)
        router.get(
            "/transactions/{transaction_id}/receipt", response_model=Receipt
        )(self.receipt)
        router.post(
            "/queries/topic-info/cost", response_model=QueryCostResponse
        )(self.topic_info_cost)
        router.post("/queries/topic-info", response_model=TopicInfo)(self.topic_info)
        router.get("/topics/{topic_id}/messages/stream")(self.stream_messages)
        return router

    def health(self) -> dict[str, Any]:
        return {"status": "ok", "timestamp": int(time.time())}

    def submit(self, signed: SignedTransaction) -> TransactionResponse:
        try:
            return self.ledger.submit(signed)
        except ValidationError as e:
            raise HTTPException(400, str(e))

    def receipt(self, transaction_id: str) -> Receipt:
        try:
            return self.ledger.receipt(transaction_id)
        except NotFoundError as e:
            raise HTTPException(404, str(e))

    def topic_info_cost(self, req: TopicInfoRequest) -> QueryCostResponse:
        try:
            return QueryCostResponse(cost=self.ledger.topic_info_cost(req.topic_id))
        except NotFoundError as e:
            raise HTTPException(404, str(e))

    def topic_info(self, req: TopicInfoRequest) -> TopicInfo:
        try:
            return self.ledger.topic_info(req.topic_id, req.payment)
        except NotFoundError as e:
            raise HTTPException(404, str(e))
        except ValidationError as e:
            raise HTTPException(402, str(e))

    def stream_messages(
        self,
        request: Request,
        topic_id: str,
        start: str = "0.0",
        end: str | None = None,
        limit: int | None = None,
    ) -> StreamingResponse:
        try:
            self.ledger.topic(topic_id)
            start_ts = Timestamp.parse(start)
            end_ts = Timestamp.parse(end) if end else None
        except NotFoundError as e:
            raise HTTPException(404, str(e))
        except ValueError as e:
            raise HTTPException(400, str(e))
        return StreamingResponse(
            self._frames(request, topic_id, start_ts, end_ts, limit),
            media_type="application/x-ndjson",
        )

    async def _frames(
        self,
        request: Request,
        topic_id: str,
        start: Timestamp,
        end: Timestamp | None,
        limit: int | None,
    ) -> AsyncIterator[str]:
        cursor = start
        sent = 0
        idle = 0.0
        while not self.ledger.closed:
            remaining = None if limit is None else limit - sent
            batch = self.ledger.messages_between(topic_id, cursor, end, remaining)
            for frame in batch:
                yield frame.model_dump_json() + "\n"
                cursor = Timestamp.parse(frame.consensus_timestamp).plus_nanos(1)
                sent += 1
            if limit is not None and sent >= limit:
                return
            if end is not None and Timestamp.now() > end and not batch:
                return
            if batch:
                idle = 0.0
            else:
                idle += STREAM_POLL_INTERVAL
                if idle >= self.keepalive_interval:
                    idle = 0.0
                    yield "\n"
            if await request.is_disconnected():
                return
            await asyncio.sleep(STREAM_POLL_INTERVAL)
