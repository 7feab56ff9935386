"""HTTP delivery client: one POST per batch, outcome returned instead of raised."""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Union

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of one delivery attempt.

    ``ok`` with a status code means the endpoint accepted the batch. A failed
    outcome carries either a status code and reason phrase (the endpoint
    rejected it) or the transport exception (it was never reached).
    """

    ok: bool
    status_code: Optional[int] = None
    reason: str = ""
    error: Optional[BaseException] = None

    @property
    def unreachable(self) -> bool:
        return self.error is not None


class DeliveryClient(Protocol):
    async def send(
        self, url: str, headers: dict[str, str], body: Union[str, bytes]
    ) -> DeliveryOutcome: ...

    async def aclose(self) -> None: ...


class HttpDeliveryClient:
    """Posts batch bodies with an ``httpx.AsyncClient``.

    *timeout* is the request deadline in seconds. ``None`` disables it
    entirely, which means a hung endpoint keeps the request open for as long
    as the connection lives.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def send(
        self, url: str, headers: dict[str, str], body: Union[str, bytes]
    ) -> DeliveryOutcome:
        if isinstance(body, str):
            body = body.encode("utf-8")
        try:
            response = await self._client.post(url, content=body, headers=headers)
        except httpx.HTTPError as exc:
            logger.debug("Transport error posting to %s: %r", url, exc)
            return DeliveryOutcome(ok=False, error=exc)

        return DeliveryOutcome(
            ok=response.is_success,
            status_code=response.status_code,
            reason=response.reason_phrase,
        )

    async def aclose(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_client:
            await self._client.aclose()
