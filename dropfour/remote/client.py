"""
Inference Client - The scheduler's call function for the remote endpoint.

Wire contract:
    POST <endpoint_url>
    headers: category, request-id
    body:    {"question": str, "maxTokens": int, "temperature": float, "model"?: str}
    reply:   {"answer": str}

Status mapping:
    2xx -> parsed JSON body
    429 -> RateLimitError
    any other status or transport failure -> NetworkError
"""

from __future__ import annotations
from typing import Any, Optional
import asyncio
import json
import logging

import aiohttp
from pydantic import BaseModel, Field

from ..errors import AbortError, NetworkError, ParseError, RateLimitError
from ..scheduler.envelope import RequestEnvelope

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "http://localhost:7071/api/askGPT"


class InferenceRequest(BaseModel):
    """Body sent to the inference endpoint."""
    question: str = Field(min_length=1)
    max_tokens: int = Field(default=150, alias="maxTokens", gt=0, le=4000)
    temperature: float = Field(default=0.7, ge=0.0, le=1.0)
    model: Optional[str] = None

    model_config = {"populate_by_name": True}

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class InferenceResponse(BaseModel):
    """Body returned by the inference endpoint."""
    answer: str


class InferenceClient:
    """
    aiohttp-backed call function.

    Usage:
        async with InferenceClient("https://example.net/api/askGPT") as client:
            scheduler = RequestScheduler(call=client)
    """

    def __init__(
        self,
        endpoint_url: str = DEFAULT_ENDPOINT,
        request_timeout: float = 30.0,
        default_headers: Optional[dict[str, str]] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.endpoint_url = endpoint_url
        self._timeout = float(request_timeout)
        self._headers = default_headers or {}
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> InferenceClient:
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def __call__(self, envelope: RequestEnvelope) -> dict[str, Any]:
        if envelope.cancel_token.cancelled:
            raise AbortError("Request cancelled before sending", context={"request_id": envelope.id})

        headers = {
            **self._headers,
            "Content-Type": "application/json",
            "category": envelope.category,
            "request-id": envelope.id,
        }
        session = self._get_session()

        try:
            async with session.post(
                self.endpoint_url,
                json=envelope.payload,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                if resp.status == 429:
                    raise RateLimitError(
                        "Rate limit reached at inference endpoint",
                        context={"request_id": envelope.id},
                    )
                if not 200 <= resp.status < 300:
                    body = await resp.text()
                    raise NetworkError(
                        f"API error: {resp.status}",
                        status=resp.status,
                        context={"request_id": envelope.id, "body": body[:200]},
                    )
                try:
                    return await resp.json(content_type=None)
                except (json.JSONDecodeError, aiohttp.ContentTypeError) as e:
                    raise ParseError("Response body is not JSON", context={"request_id": envelope.id}) from e
        except aiohttp.ClientError as e:
            logger.debug("Transport failure for %s: %s", envelope.id, e)
            raise NetworkError(f"Transport failure: {e}", context={"request_id": envelope.id}) from e
        except asyncio.TimeoutError as e:
            raise NetworkError(
                f"Request timed out after {self._timeout:g}s",
                context={"request_id": envelope.id},
            ) from e
