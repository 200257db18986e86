"""
Dog Spotter Backend — ML Breed Prediction Client
=================================================

What:  HTTP client for the external breed classifier.
How:   POST {ML_SERVICE_URL}/predict with {"id", "image_url"} and read
       {"result", "confidence"} back; every call goes through a circuit breaker.
Who:   Built once in create_app() and injected into DogService; the health
       endpoint calls health_check().

Resilience:
    - httpx timeout bounds every call (ML_TIMEOUT_SECONDS)
    - Circuit breaker fails fast while the classifier keeps failing
    - No retries: a missed prediction only means a dog without a breed
"""

import asyncio
import logging
import time
import uuid
from typing import Optional

import httpx

from dogspotter.config import settings
from dogspotter.exceptions import CircuitBreakerOpenError, UpstreamUnavailableError
from dogspotter.services.breed_predictor import BreedPredictor, PredictionResult

logger = logging.getLogger(__name__)

HEALTH_TIMEOUT_SECONDS = 5.0


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker
# ══════════════════════════════════════════════════════════════════════════


class CircuitBreaker:
    """
    Circuit breaker guarding the classifier.

    State Machine:
        CLOSED     → each failure increments failure_count;
                     failure_count >= threshold → OPEN
        OPEN       → allow() raises CircuitBreakerOpenError until
                     recovery_timeout seconds have passed → HALF_OPEN
        HALF_OPEN  → exactly one trial call; other callers are rejected
                     until it ends; success → CLOSED, failure → OPEN

    Not thread-safe. One uvicorn worker runs one event loop, and the state
    only changes between awaits.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.opened_at: Optional[float] = None
        self.trial_in_flight = False

    def allow(self) -> None:
        """
        Raises CircuitBreakerOpenError while the circuit is OPEN, and while
        the single HALF_OPEN trial call is still running.
        """
        if self.state == self.CLOSED:
            return

        if self.state == self.HALF_OPEN:
            if self.trial_in_flight:
                raise CircuitBreakerOpenError(recovery_time=0)
            self.trial_in_flight = True
            return

        elapsed = time.monotonic() - (self.opened_at or 0)
        if elapsed >= self.recovery_timeout:
            logger.info("ML circuit breaker HALF_OPEN after %.1fs", elapsed)
            self.state = self.HALF_OPEN
            self.trial_in_flight = True
            return

        raise CircuitBreakerOpenError(recovery_time=int(self.recovery_timeout - elapsed))

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("ML circuit breaker CLOSED (classifier recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.opened_at = None
        self.trial_in_flight = False

    def record_failure(self) -> None:
        self.failure_count += 1
        self.trial_in_flight = False

        if self.state == self.HALF_OPEN:
            logger.warning("ML circuit breaker back to OPEN (trial call failed)")
            self._open()
        elif self.state == self.CLOSED and self.failure_count >= self.failure_threshold:
            logger.warning(
                "ML circuit breaker OPEN after %d consecutive failures",
                self.failure_count,
            )
            self._open()

    def _open(self) -> None:
        self.state = self.OPEN
        self.opened_at = time.monotonic()


# ══════════════════════════════════════════════════════════════════════════
# ML Service
# ══════════════════════════════════════════════════════════════════════════


class MLService(BreedPredictor):
    """
    Breed classifier reached over HTTP.

    Error Handling Chain:
        breaker open               → CircuitBreakerOpenError (no request sent)
        trial already running      → CircuitBreakerOpenError (no request sent)
        transport error / timeout  → record failure → UpstreamUnavailableError
        non-2xx status             → record failure → UpstreamUnavailableError
        malformed JSON body        → record failure → UpstreamUnavailableError
        cancelled by the caller    → record failure → CancelledError re-raised
        2xx with {"result": ...}   → record success → PredictionResult
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url:        Override ML_SERVICE_URL.
            timeout:         Override ML_TIMEOUT_SECONDS.
            circuit_breaker: Pre-built breaker (tests use a low threshold).
            transport:       httpx transport; tests pass httpx.MockTransport.
        """
        self.base_url = (base_url or settings.ml_service_url).rstrip("/")
        self.timeout = timeout or settings.ml_timeout_seconds
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )
        self._transport = transport

        logger.info(
            "MLService initialized with url=%s, timeout=%.1fs, "
            "circuit_breaker(threshold=%d, recovery=%ds)",
            self.base_url,
            self.timeout,
            self.circuit_breaker.failure_threshold,
            self.circuit_breaker.recovery_timeout,
        )

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            transport=self._transport,
        )

    async def predict(self, image_url: str, dog_id: str) -> PredictionResult:
        """
        What:  Asks the classifier for the breed in `image_url`.
        Returns PredictionResult(breed=None) when the classifier has no answer.
        """
        call_id = str(uuid.uuid4())[:8]
        self.circuit_breaker.allow()

        start_time = time.monotonic()
        try:
            async with self._client(self.timeout) as client:
                response = await client.post(
                    "/predict",
                    json={"id": str(dog_id), "image_url": image_url},
                )
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            self.circuit_breaker.record_failure()
            logger.warning(
                "[%s] Breed prediction for dog %s failed after %.0fms: %s",
                call_id,
                dog_id,
                (time.monotonic() - start_time) * 1000,
                str(e),
            )
            raise UpstreamUnavailableError(
                context={"call_id": call_id, "error_type": type(e).__name__},
            ) from e
        except asyncio.CancelledError:
            # The caller's deadline (asyncio.wait_for) fired before httpx's own
            self.circuit_breaker.record_failure()
            logger.warning(
                "[%s] Breed prediction for dog %s cancelled after %.0fms",
                call_id,
                dog_id,
                (time.monotonic() - start_time) * 1000,
            )
            raise

        self.circuit_breaker.record_success()

        breed = body.get("result") if isinstance(body, dict) else None
        confidence = body.get("confidence") if isinstance(body, dict) else None
        if not isinstance(breed, str) or not breed.strip():
            breed = None
        if not isinstance(confidence, (int, float)):
            confidence = None

        logger.info(
            "[%s] Breed prediction for dog %s in %.0fms: %s (confidence=%s)",
            call_id,
            dog_id,
            (time.monotonic() - start_time) * 1000,
            breed,
            confidence,
        )
        return PredictionResult(breed=breed.strip() if breed else None, confidence=confidence)

    async def health_check(self) -> bool:
        """GET {ML_SERVICE_URL}/health with a 5 second timeout."""
        try:
            async with self._client(HEALTH_TIMEOUT_SECONDS) as client:
                response = await client.get("/health")
            return response.is_success
        except httpx.HTTPError as e:
            logger.warning("ML health check failed: %s", str(e))
            return False
