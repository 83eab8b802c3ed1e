"""HTTP client for the queue API.

Every call returns either ``Authoritative(value)`` (the server answered) or
``Unavailable(reason)`` (it did not, for whatever reason). Nothing is raised
to the caller, so deciding to fall back to local simulation is an explicit
branch on the result type.
"""

import logging
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

import httpx
from pydantic import ValidationError

from tablequeue.schemas.queue import JoinQueueResponse, QueueStatusView

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Authoritative(Generic[T]):
    value: T


@dataclass(frozen=True)
class Unavailable:
    reason: str


Result = Union[Authoritative[T], Unavailable]


class QueueApiClient:
    """Thin async wrapper over the queue endpoints with a short timeout."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> "QueueApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_status(self, restaurant_id: str, participant_id: Optional[str] = None) -> Result[QueueStatusView]:
        params = {"participantId": participant_id} if participant_id else None
        result = await self._request("GET", f"/queue/{restaurant_id}", params=params)
        if isinstance(result, Unavailable):
            return result
        try:
            return Authoritative(QueueStatusView.model_validate(result.value))
        except ValidationError as e:
            return self._unavailable(f"malformed status body: {e.error_count()} errors")

    async def join(self, restaurant_id: str, participant_id: str, party_size: int) -> Result[int]:
        result = await self._request(
            "POST",
            "/queue/join",
            json={"restaurantId": restaurant_id, "userId": participant_id, "partySize": party_size},
        )
        if isinstance(result, Unavailable):
            return result
        try:
            return Authoritative(JoinQueueResponse.model_validate(result.value).queue_number)
        except ValidationError as e:
            return self._unavailable(f"malformed join body: {e.error_count()} errors")

    async def leave(self, restaurant_id: str, participant_id: str) -> Result[bool]:
        result = await self._request(
            "POST",
            "/queue/leave",
            json={"restaurantId": restaurant_id, "userId": participant_id},
        )
        if isinstance(result, Unavailable):
            return result
        return Authoritative(True)

    async def _request(self, method: str, path: str, **kwargs) -> Result[Any]:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
            return Authoritative(response.json())
        except httpx.TimeoutException:
            return self._unavailable(f"{method} {path} timed out after {self.timeout}s")
        except httpx.HTTPStatusError as e:
            return self._unavailable(f"{method} {path} returned {e.response.status_code}")
        except httpx.HTTPError as e:
            return self._unavailable(f"{method} {path} failed: {e.__class__.__name__}")
        except ValueError:
            return self._unavailable(f"{method} {path} returned a non-JSON body")

    @staticmethod
    def _unavailable(reason: str) -> Unavailable:
        logger.debug(f"Queue API unavailable: {reason}")
        return Unavailable(reason)
