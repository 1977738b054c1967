"""
DevCamper Backend — MapQuest Geocoder Implementation
======================================================

What:  Resolves street addresses and zipcodes to coordinates through the
       MapQuest Geocoding API (GET /geocoding/v1/address).
Who:   BootcampService (create, update with a new address, radius search)
       and the seeder.

Resilience Strategy:
    1. httpx timeout on every request
    2. Tenacity retry with exponential backoff + jitter on transport errors
       and 5xx responses
    3. Circuit breaker: after cb_failure_threshold failed geocodes, calls
       fail immediately for cb_recovery_timeout seconds
"""

import logging
import time
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from devcamper.config import settings
from devcamper.exceptions import CircuitBreakerOpenError, GeocoderError, ValidationError
from devcamper.services.geocoder_base import GeocodeResult, Geocoder

logger = logging.getLogger(__name__)

# Retried: the request never completed, or the provider failed server-side.
RETRYABLE_ERRORS = (httpx.TransportError, httpx.HTTPStatusError)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Closed / open / half-open breaker around the geocoding provider.

    CLOSED     → failures are counted; at failure_threshold → OPEN
    OPEN       → can_execute() raises CircuitBreakerOpenError until
                 recovery_timeout seconds after the last failure → HALF_OPEN
    HALF_OPEN  → one call goes through; success → CLOSED, failure → OPEN

    Single-process state: each uvicorn worker has its own breaker.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Returns:
            True when a call may proceed.

        Raises:
            CircuitBreakerOpenError while the circuit is open.
        """
        if self.state == self.OPEN:
            elapsed = time.monotonic() - (self.last_failure_time or 0)
            if elapsed < self.recovery_timeout:
                raise CircuitBreakerOpenError(
                    recovery_time=max(1, int(self.recovery_timeout - elapsed))
                )
            logger.info("Geocoder circuit breaker HALF_OPEN after %.1fs", elapsed)
            self.state = self.HALF_OPEN
        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Geocoder circuit breaker CLOSED (provider recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.monotonic()

        if self.state == self.HALF_OPEN:
            logger.warning("Geocoder circuit breaker back to OPEN (test call failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Geocoder circuit breaker OPEN after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# MapQuest Geocoder
# ══════════════════════════════════════════════════════════════════════════

class MapQuestGeocoder(Geocoder):
    """
    MapQuest Geocoding API client.

    Every argument defaults to the matching setting; tests pass their own
    (e.g. zero waits, an httpx.MockTransport).
    """

    ADDRESS_PATH = "/geocoding/v1/address"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        min_wait: Optional[float] = None,
        max_wait: Optional[float] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.geocoder_api_key
        self.base_url = (base_url or settings.geocoder_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.geocoder_timeout
        self.max_attempts = max_attempts if max_attempts is not None else settings.retry_max_attempts
        self.min_wait = min_wait if min_wait is not None else settings.retry_min_wait
        self.max_wait = max_wait if max_wait is not None else settings.retry_max_wait
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )
        self._transport = transport

    async def geocode(self, address: str) -> GeocodeResult:
        address = (address or "").strip()
        if not address:
            raise ValidationError(message="Please add an address", field="address")

        self.circuit_breaker.can_execute()

        try:
            payload = await self._request_with_retry(address)
        except RETRYABLE_ERRORS as e:
            self.circuit_breaker.record_failure()
            logger.error("Geocoding failed after %d attempts: %s", self.max_attempts, str(e))
            raise GeocoderError(
                message="Could not reach the geocoding service. Please try again later.",
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"attempts": self.max_attempts, "error_type": type(e).__name__},
            )
        except GeocoderError:
            self.circuit_breaker.record_failure()
            raise

        self.circuit_breaker.record_success()
        return self._parse(address, payload)

    def health_status(self) -> str:
        if self.circuit_breaker.state == CircuitBreaker.OPEN:
            return "circuit_open"
        return "available"

    async def _request_with_retry(self, address: str) -> Dict[str, Any]:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential_jitter(
                initial=self.min_wait,
                max=self.max_wait,
                jitter=1 if self.max_wait else 0,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return await retrying(self._fetch, address)

    async def _fetch(self, address: str) -> Dict[str, Any]:
        start_time = time.perf_counter()
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            resp = await client.get(
                self.ADDRESS_PATH,
                params={"key": self.api_key, "location": address, "maxResults": 1},
            )

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.debug("MapQuest responded %d in %.0fms", resp.status_code, duration_ms)

        if resp.status_code >= 500:
            resp.raise_for_status()
        if resp.status_code >= 400:
            raise GeocoderError(
                message="The geocoding service rejected the request.",
                context={"status_code": resp.status_code, "body": resp.text[:500]},
            )

        try:
            return resp.json()
        except ValueError:
            raise GeocoderError(
                message="The geocoding service returned an unreadable response.",
                context={"body": resp.text[:500]},
            )

    @staticmethod
    def _parse(address: str, payload: Dict[str, Any]) -> GeocodeResult:
        info = payload.get("info") or {}
        status_code = info.get("statuscode", 0)
        if status_code == 400:
            raise ValidationError(
                message=f"Could not geocode address '{address}'",
                field="address",
                context={"provider_messages": info.get("messages", [])},
            )
        if status_code:
            raise GeocoderError(
                message="The geocoding service returned an error.",
                context={"statuscode": status_code, "provider_messages": info.get("messages", [])},
            )

        results = payload.get("results") or []
        locations = results[0].get("locations") if results else None
        if not locations:
            raise ValidationError(message=f"Could not geocode address '{address}'", field="address")

        location = locations[0]
        lat_lng = location.get("latLng") or {}
        if lat_lng.get("lat") is None or lat_lng.get("lng") is None:
            raise ValidationError(message=f"Could not geocode address '{address}'", field="address")

        street = location.get("street") or None
        city = location.get("adminArea5") or None
        state_code = location.get("adminArea3") or None
        zipcode = location.get("postalCode") or None
        country_code = location.get("adminArea1") or None

        region = " ".join(part for part in (state_code, zipcode) if part)
        formatted = ", ".join(part for part in (street, city, region, country_code) if part)

        return GeocodeResult(
            latitude=float(lat_lng["lat"]),
            longitude=float(lat_lng["lng"]),
            formatted_address=formatted or address,
            street=street,
            city=city,
            state_code=state_code,
            zipcode=zipcode,
            country_code=country_code,
        )


def create_geocoder() -> Geocoder:
    """Build the configured provider (settings.geocoder_provider)."""
    if settings.geocoder_provider == "mapquest":
        return MapQuestGeocoder()
    raise ValueError(f"Unsupported geocoder provider: {settings.geocoder_provider}")


# Shared so the circuit breaker state is shared by all requests.
geocoder_service = create_geocoder()
