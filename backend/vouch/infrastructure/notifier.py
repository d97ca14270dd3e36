"""Notifiers — outbound webhook delivery with retry, backoff, and error mapping.

Invariants:
    - Transient failures (connection errors, timeouts, 5xx, 429): retried up to
      max_retries times with exponential backoff
    - Client errors (4xx except 429): immediate failure, no retry
    - All delivery failures mapped to NotificationError (core/errors.py)
    - notify_safely() never raises: ledger writes are already committed and must
      not be rolled back by a notification failure

Design Decisions:
    - Webhook over a vendor SDK: WhatsApp / push delivery lives behind the
      receiving service, this side only POSTs JSON events
    - ±25% jitter on backoff: prevents thundering herd on a shared receiver
    - LoggingNotifier when no webhook URL is configured: local runs and tests
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable

import httpx

from vouch.config import Settings
from vouch.core.domain_types import UserId, WorkerId, CommunityId, ReferenceId
from vouch.core.errors import NotificationError, ErrorContext
from vouch.core.repository_protocols import Notifier

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class LoggingNotifier:
    """Notifier that only writes log lines. Used when no webhook is configured."""

    async def reference_submitted(
        self, worker_id: WorkerId, reference_id: ReferenceId, rating: int,
    ) -> None:
        logger.info(
            f"Notify worker: new reference rated {rating}",
            extra={"worker_id": worker_id, "reference_id": reference_id},
        )

    async def reference_disputed(
        self, worker_id: WorkerId, reference_id: ReferenceId, reason: str,
    ) -> None:
        logger.info(
            "Notify worker: reference disputed",
            extra={"worker_id": worker_id, "reference_id": reference_id},
        )

    async def verification_code_issued(
        self, user_id: UserId, community_id: CommunityId, code: str,
    ) -> None:
        # Never log the code itself
        logger.info(
            "Verification code ready for delivery",
            extra={"user_id": user_id, "community_id": community_id},
        )


class WebhookNotifier:
    """POSTs notification events to a webhook with retry on transient failures."""

    def __init__(
        self,
        url: str,
        max_retries: int = 3,
        timeout_seconds: float = 5.0,
        base_delay_ms: int = 200,
        max_delay_ms: int = 5_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.max_retries = max_retries
        self.timeout_seconds = timeout_seconds
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self._transport = transport

    async def reference_submitted(
        self, worker_id: WorkerId, reference_id: ReferenceId, rating: int,
    ) -> None:
        await self._post({
            "event": "reference.submitted",
            "worker_id": str(worker_id),
            "reference_id": str(reference_id),
            "rating": rating,
        })

    async def reference_disputed(
        self, worker_id: WorkerId, reference_id: ReferenceId, reason: str,
    ) -> None:
        await self._post({
            "event": "reference.disputed",
            "worker_id": str(worker_id),
            "reference_id": str(reference_id),
            "reason": reason,
        })

    async def verification_code_issued(
        self, user_id: UserId, community_id: CommunityId, code: str,
    ) -> None:
        await self._post({
            "event": "verification_code.issued",
            "user_id": str(user_id),
            "community_id": str(community_id),
            "code": code,
        })

    async def _post(self, payload: dict) -> None:
        async with httpx.AsyncClient(
            timeout=self.timeout_seconds, transport=self._transport,
        ) as client:
            for attempt in range(self.max_retries + 1):
                try:
                    response = await client.post(self.url, json=payload)
                except httpx.TransportError as e:
                    await self._backoff_or_raise(attempt, f"transport error: {e}")
                    continue

                if response.status_code < 400:
                    return
                if response.status_code in _RETRYABLE_STATUS:
                    await self._backoff_or_raise(
                        attempt, f"HTTP {response.status_code}",
                    )
                    continue
                raise NotificationError(
                    f"HTTP {response.status_code}",
                    ErrorContext(debug_info={"event": payload.get("event")}),
                )

    async def _backoff_or_raise(self, attempt: int, reason: str) -> None:
        if attempt >= self.max_retries:
            raise NotificationError(f"{reason} after {attempt + 1} attempts")
        delay_ms = self._calculate_delay(attempt)
        logger.warning(
            f"Notification {reason}, retry in {delay_ms}ms",
            extra={"attempt": attempt + 1},
        )
        await asyncio.sleep(delay_ms / 1000)

    def _calculate_delay(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter, capped at max_delay_ms."""
        base = min(self.base_delay_ms * (2 ** attempt), self.max_delay_ms)
        jitter = base * 0.25 * (2 * random.random() - 1)
        return max(0, int(base + jitter))


def build_notifier(settings: Settings) -> Notifier:
    if settings.notification_webhook_url:
        return WebhookNotifier(
            settings.notification_webhook_url,
            max_retries=settings.notification_max_retries,
            timeout_seconds=settings.notification_timeout_seconds,
            base_delay_ms=settings.notification_base_delay_ms,
            max_delay_ms=settings.notification_max_delay_ms,
        )
    return LoggingNotifier()


async def notify_safely(send: Callable[[], Awaitable[None]], description: str) -> None:
    """Run a notification as a fire-and-forget side effect. Never raises."""
    try:
        await send()
    except NotificationError as e:
        logger.warning(f"{description} not delivered: {e.message}")
    except Exception as e:
        logger.error(f"{description} failed unexpectedly: {e}", exc_info=True)
