"""Remote ID feed client: subscriptions, observation queries and demo injection."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ridtrack.config import settings
from ridtrack.models.geo import GeoPoint

logger = logging.getLogger("ridtrack.ingestors.rid")

API_KEY_HEADER = "X-API-Key"


class FeedError(RuntimeError):
    """Raised when the RID backend cannot be reached or answers with an error."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def _extract_subscription_id(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    nested = payload.get("dss_subscription_response")
    if isinstance(nested, dict) and nested.get("dss_subscription_id"):
        return str(nested["dss_subscription_id"])
    if payload.get("dss_subscription_id"):
        return str(payload["dss_subscription_id"])
    return None


class RIDFeedClient:
    """Talk to the RID proxy endpoints of the flight backend."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.rid_api_base_url).rstrip("/")
        self.timeout = timeout or settings.rid_timeout
        self.api_key = api_key if api_key is not None else settings.rid_api_key
        self.transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers[API_KEY_HEADER] = self.api_key
        return headers

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self.transport,
                headers=self._headers(),
            ) as client:
                return await client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            logger.warning("RID %s %s timed out: %s", method, path, exc)
            raise FeedError("RID backend timeout") from exc
        except httpx.RequestError as exc:
            logger.warning("RID %s %s failed: %s", method, path, exc)
            raise FeedError("RID request failed") from exc

    @staticmethod
    def _raise_for_status(response: httpx.Response, what: str) -> None:
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "%s failed: status=%s body=%s",
                what,
                exc.response.status_code,
                exc.response.text,
            )
            raise FeedError(
                f"{what} failed ({exc.response.status_code})",
                status_code=exc.response.status_code,
            ) from exc

    @staticmethod
    def _json(response: httpx.Response, what: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            logger.warning("Failed to parse %s JSON response: %s", what, exc)
            raise FeedError(f"{what} returned invalid JSON") from exc

    async def create_subscription(self, view_param: str) -> str:
        """Register a subscription for the serialized viewport and return its handle."""

        response = await self._request(
            "PUT", "/api/rid/subscription", params={"view": view_param}
        )
        self._raise_for_status(response, "RID subscription")
        subscription_id = _extract_subscription_id(self._json(response, "RID subscription"))
        if not subscription_id:
            logger.warning("RID subscription response did not include a subscription id")
            raise FeedError("RID subscription response missing subscription id")

        logger.debug("Created RID subscription %s for view %s", subscription_id, view_param)
        return subscription_id

    async def fetch_observations(self, subscription_id: str) -> list[dict[str, Any]] | None:
        """Return raw observations for a subscription.

        ``None`` means the backend no longer knows the subscription (HTTP 404),
        which callers treat as server-side expiry.
        """

        response = await self._request("GET", f"/api/rid/data/{subscription_id}")
        if response.status_code == 404:
            logger.info("RID subscription %s not found on backend", subscription_id)
            return None
        self._raise_for_status(response, "RID data")

        payload = self._json(response, "RID data")
        if isinstance(payload, list):
            observations = payload
        elif isinstance(payload, dict) and isinstance(payload.get("flights"), list):
            observations = payload["flights"]
        else:
            observations = []

        logger.debug(
            "Fetched %s RID observations for subscription %s",
            len(observations),
            subscription_id,
        )
        return [entry for entry in observations if isinstance(entry, dict)]

    async def inject_demo_traffic(self, center: GeoPoint, subscription_id: str) -> None:
        """Ask the backend to inject synthetic observations around ``center``."""

        body = {
            "center": {"lat": center.lat, "lon": center.lon},
            "subscription_id": subscription_id,
        }
        response = await self._request("POST", "/api/rid/demo", json=body)
        self._raise_for_status(response, "RID demo injection")
        logger.info(
            "Injected demo RID traffic at %.5f,%.5f for subscription %s",
            center.lat,
            center.lon,
            subscription_id,
        )


__all__ = ["API_KEY_HEADER", "FeedError", "RIDFeedClient"]
