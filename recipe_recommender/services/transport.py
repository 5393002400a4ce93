"""HTTP transport to the messages endpoint with exponential backoff retries (async).

One logical request is a bounded loop of attempts. Every attempt gets a fresh
RequestEnvelope from the caller's factory, so nothing is shared or mutated
between retries.

**Retry Strategy:**
- Network errors (DNS, reset, timeout): retry after 2^attempt seconds (1s → 2s → 4s)
- HTTP 5xx: retry after 2^attempt + uniform[0, 1) seconds
- HTTP 4xx (and any other non-2xx): fail immediately, surfacing status and body
- 2xx: never retried; the body either yields assistant text or a terminal error

Sleep and randomness are injected so tests never wait on real timers.
Backoff sleeps are awaited, so cancelling the calling task cancels a pending retry.
"""

import asyncio
import json
import logging
import random
import uuid
from typing import Any, Awaitable, Callable, Optional

import aiohttp

from recipe_recommender.models.errors import TransportError, TransportErrorCategory
from recipe_recommender.models.models import RequestEnvelope, RetryState
from recipe_recommender.utils.config import config
from recipe_recommender.utils.logger import logger as default_logger

NETWORK_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, TimeoutError, OSError)


def backoff_delay(attempt: int) -> float:
    """Base delay before retrying after ``attempt`` (0-based): 2^attempt seconds."""
    return float(2**attempt)


def _first_text(content: Any) -> Optional[str]:
    if isinstance(content, list) and content and isinstance(content[0], dict):
        text = content[0].get("text")
        if isinstance(text, str):
            return text
    return None


def extract_message_text(payload: Any, logger: Optional[logging.Logger] = None) -> str:
    """Pull the assistant text out of a decoded response envelope.

    Tries, in order: ``message.content[0].text``, ``content[0].text``,
    ``completion``. An ``error.message`` field is surfaced as an
    application error.

    Raises:
        TransportError: APPLICATION_ERROR or MALFORMED_RESPONSE.
    """
    log = logger or default_logger

    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, dict):
            text = _first_text(message.get("content"))
            if text is not None:
                log.debug("Found text in message.content response format")
                return text

        text = _first_text(payload.get("content"))
        if text is not None:
            log.debug("Found text in content response format")
            return text

        completion = payload.get("completion")
        if isinstance(completion, str):
            log.debug("Found text in legacy completion format")
            return completion

        error = payload.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            log.error(f"API returned an error: {error['message']}")
            raise TransportError(error["message"], TransportErrorCategory.APPLICATION_ERROR)

    log.error("Unknown JSON response structure")
    log.debug(f"Response payload: {str(payload)[:500]}")
    raise TransportError("Unrecognized response structure", TransportErrorCategory.MALFORMED_RESPONSE)


def parse_response_body(body: str, logger: Optional[logging.Logger] = None) -> str:
    """Decode a 2xx body and return the assistant text.

    Raises:
        TransportError: MALFORMED_RESPONSE for empty or non-JSON bodies, or the
            errors of extract_message_text().
    """
    log = logger or default_logger
    if not body:
        log.error("No data received")
        raise TransportError("No data received", TransportErrorCategory.MALFORMED_RESPONSE)

    try:
        payload = json.loads(body)
    except json.JSONDecodeError as e:
        log.error("Failed to parse response as JSON")
        log.debug(f"Raw response: {body[:100]}...")
        raise TransportError("Response not JSON", TransportErrorCategory.MALFORMED_RESPONSE, body=body) from e

    return extract_message_text(payload, logger=log)


class RequestTransport:
    """Send envelopes to the messages endpoint and return assistant text.

    Holds an aiohttp.ClientSession (a connection pool, safe to share between
    concurrent calls). Per-request state lives only inside send().
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        *,
        max_retries: Optional[int] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """Initialize the transport.

        Args:
            session: Session to send with. If None, one is created on first use and
                closed by close().
            max_retries: Retries after the first attempt. Default: MAX_RETRIES (3).
            sleep: Awaitable sleep used for backoff waits.
            rng: Random source for server-error jitter.
            logger: Logger for attempt diagnostics.
        """
        self._session = session
        self._owns_session = session is None
        self.max_retries = config.MAX_RETRIES if max_retries is None else max_retries
        self._sleep = sleep
        self._rng = rng or random.Random()
        self.logger = logger or default_logger

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def _post(self, envelope: RequestEnvelope) -> tuple[int, str]:
        """Single HTTP POST. Returns (status, decoded body)."""
        session = await self._get_session()
        async with session.post(
            envelope.url,
            data=json.dumps(envelope.body),
            headers=envelope.headers,
            timeout=aiohttp.ClientTimeout(total=envelope.timeout),
        ) as response:
            raw = await response.read()
            return response.status, raw.decode("utf-8", errors="replace")

    async def send(
        self,
        envelope_factory: Callable[[], RequestEnvelope],
        retry_state: Optional[RetryState] = None,
    ) -> str:
        """Send one logical request, retrying transient failures.

        Args:
            envelope_factory: Builds the envelope for each attempt.
            retry_state: Starting state. Default: attempt 0 with this transport's max_retries.

        Returns:
            The assistant's text content.

        Raises:
            TransportError: Terminal failure (see TransportErrorCategory).
        """
        state = retry_state or RetryState(max_retries=self.max_retries)

        while True:
            envelope = envelope_factory()
            request_id = uuid.uuid4().hex[:8]
            extra = {"request_id": request_id}
            self.logger.info(
                f"Sending request {request_id} (attempt {state.attempt + 1}/{state.total_attempts})",
                extra=extra,
            )
            self.logger.debug(f"Request {request_id} headers: {envelope.redacted_headers()}", extra=extra)

            try:
                status, body = await self._post(envelope)
            except NETWORK_ERRORS as e:
                self.logger.error(f"Request {request_id} connection error: {e!r}", extra=extra)
                if state.can_retry:
                    delay = backoff_delay(state.attempt)
                    self.logger.warning(f"Request {request_id} will retry in {delay:.1f}s", extra=extra)
                    await self._sleep(delay)
                    state = state.next()
                    continue
                self.logger.error(f"Request {request_id} max retries reached, giving up", extra=extra)
                raise TransportError(
                    f"Network error: {e}",
                    TransportErrorCategory.NETWORK,
                    attempts=state.attempt + 1,
                ) from e

            self.logger.info(f"Request {request_id} received HTTP status: {status}", extra=extra)

            if not 200 <= status < 300:
                self.logger.debug(f"Request {request_id} error body: {body[:500]}", extra=extra)

                if 500 <= status < 600:
                    if state.can_retry:
                        delay = backoff_delay(state.attempt) + self._rng.random()
                        self.logger.warning(
                            f"Request {request_id} server error ({status}), retrying in {delay:.2f}s",
                            extra=extra,
                        )
                        await self._sleep(delay)
                        state = state.next()
                        continue
                    raise TransportError(
                        f"HTTP Error: {status}",
                        TransportErrorCategory.HTTP_SERVER_EXHAUSTED,
                        status_code=status,
                        body=body,
                        attempts=state.attempt + 1,
                    )

                raise TransportError(
                    f"HTTP Error: {status}",
                    TransportErrorCategory.HTTP_CLIENT,
                    status_code=status,
                    body=body,
                    attempts=state.attempt + 1,
                )

            self.logger.debug(f"Request {request_id} received {len(body)} characters", extra=extra)
            return parse_response_body(body, logger=self.logger)
