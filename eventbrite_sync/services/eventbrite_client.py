"""
Eventbrite v3 API client.
Read-only access to the attendee records our webhooks point at.
"""

import asyncio

import httpx

from eventbrite_sync.config import settings
from eventbrite_sync.features.attendee_sync.domain import Attendee
from eventbrite_sync.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

# Request timeouts and retry configuration
MAX_RETRIES = 3
BACKOFF_FACTOR = 2
RETRY_STATUS_CODES = {429, 500, 502, 503, 504}

ATTENDEE_EXPANSIONS = ("attendee-answers",)


class EventbriteApiError(Exception):
    """Custom exception for Eventbrite API errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int | None = None,
        response_data: dict | None = None,
    ):
        super().__init__(message)
        self.error_code = error_code
        self.status_code = status_code
        self.response_data = response_data or {}


class EventbriteClient:
    """
    Client for the Eventbrite REST API.

    Handles bearer authentication, retry with backoff on throttling and
    server errors, and mapping of Eventbrite's error envelope.
    """

    def __init__(
        self,
        api_token: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_token = api_token or settings.EVENTBRITE_API_TOKEN
        self._base_url = (base_url or settings.EVENTBRITE_API_BASE_URL).rstrip("/")
        self._client = self._create_client(transport)

    def _create_client(self, transport: httpx.AsyncBaseTransport | None) -> httpx.AsyncClient:
        timeout = httpx.Timeout(settings.EVENTBRITE_REQUEST_TIMEOUT)
        limits = httpx.Limits(max_keepalive_connections=5, max_connections=10)
        return httpx.AsyncClient(timeout=timeout, limits=limits, transport=transport)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def _get_auth_headers(self) -> dict:
        if not self._api_token:
            raise EventbriteApiError("Eventbrite API token is not configured")
        return {
            "Authorization": f"Bearer {self._api_token}",
            "Accept": "application/json",
        }

    async def _request_with_retry(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Execute an HTTP request with retry and backoff."""
        for attempt in range(1, MAX_RETRIES + 1):
            try:
                response = await self._client.request(method, url, **kwargs)
                if response.status_code in RETRY_STATUS_CODES and attempt < MAX_RETRIES:
                    backoff = BACKOFF_FACTOR * (2 ** (attempt - 1))
                    logger.debug(
                        "Eventbrite API retrying request",
                        attempt=attempt,
                        status_code=response.status_code,
                        backoff_seconds=backoff,
                    )
                    await asyncio.sleep(backoff)
                    continue
                return response
            except httpx.RequestError as e:
                if attempt >= MAX_RETRIES:
                    raise EventbriteApiError(f"Eventbrite request failed: {e}") from e
                backoff = BACKOFF_FACTOR * (2 ** (attempt - 1))
                logger.debug(
                    "Eventbrite API request error, retrying",
                    attempt=attempt,
                    error=str(e),
                    backoff_seconds=backoff,
                )
                await asyncio.sleep(backoff)
        raise RuntimeError("Eventbrite API retry loop exhausted")

    def _handle_api_response(self, response: httpx.Response, operation: str) -> dict:
        """
        Handle and validate an Eventbrite API response.

        Eventbrite reports failures as
        {"status_code": 404, "error": "NOT_FOUND", "error_description": "..."}.

        Raises:
            EventbriteApiError: If the response is not a successful JSON body
        """
        logger.debug(
            f"Eventbrite API {operation} response",
            status_code=response.status_code,
            response_size=len(response.content),
        )

        if response.is_success:
            try:
                return response.json()
            except ValueError as e:
                logger.error(f"Failed to parse Eventbrite API {operation} response", error=str(e))
                raise EventbriteApiError(f"Invalid response format: {e}") from e

        try:
            error_data = response.json()
        except ValueError:
            logger.error(
                f"Eventbrite API {operation} failed with non-JSON response",
                status_code=response.status_code,
                response_text=response.text[:200],
            )
            raise EventbriteApiError(
                f"Eventbrite API error (HTTP {response.status_code})",
                status_code=response.status_code,
            ) from None

        error_code = error_data.get("error", "unknown")
        error_message = error_data.get("error_description", "Unknown Eventbrite API error")

        logger.error(
            f"Eventbrite API {operation} failed",
            status_code=response.status_code,
            error_code=error_code,
            error_message=error_message,
        )
        raise EventbriteApiError(
            f"Eventbrite {operation} failed: {error_message}",
            error_code=str(error_code),
            status_code=response.status_code,
            response_data=error_data,
        )

    async def fetch_attendee(self, attendee_id: str) -> Attendee:
        """
        Fetch one attendee including its question answers.

        Raises:
            EventbriteApiError: If the request fails or the attendee does not exist
        """
        url = f"{self._base_url}/attendees/{attendee_id}/"
        response = await self._request_with_retry(
            "GET",
            url,
            headers=self._get_auth_headers(),
            params={"expand": ",".join(ATTENDEE_EXPANSIONS)},
        )
        data = self._handle_api_response(response, "fetch_attendee")

        logger.info("Fetched Eventbrite attendee", attendee_id=attendee_id)
        return Attendee.model_validate(data)
