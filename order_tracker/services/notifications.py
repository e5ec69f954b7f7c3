"""Notification dispatch for order events.

Tracking operations write ``OrderEvent`` entries to a Redis list in the same
transaction as the order itself. The dispatcher drains that list, sends each
event on every channel that applies to the order's customer, and records the
outcome on the order's tracking history. Sending never affects the stored
status; failed channels are retried until the attempt limit is reached.

Events are claimed by moving them to a processing list and only removed
once sent or re-queued, so an interrupted dispatcher loses nothing: the
next ``run()`` puts leftovers back on the outbox.
"""

import asyncio
import json
from abc import ABC, abstractmethod

import httpx
from pydantic import ValidationError

from order_tracker.config import get_settings
from order_tracker.exceptions import NotificationError
from order_tracker.models.events import OrderEvent
from order_tracker.models.order import Order
from order_tracker.models.tracking import NotificationChannel, NotificationRecord
from order_tracker.services.tracking import OrderTrackingService
from order_tracker.state.manager import StateManager
from order_tracker.utils.clock import utcnow
from order_tracker.utils.logging import get_logger

logger = get_logger(__name__)


def build_message(order: Order, event: OrderEvent) -> str:
    """Short text sent to the customer."""
    restaurant = order.restaurant.name or "Restoran"
    return f"{restaurant} - Sipariş #{order.id[:8]}: {event.description}"


class Channel(ABC):
    """A way of reaching the customer."""

    channel: NotificationChannel

    @abstractmethod
    def applies_to(self, order: Order) -> bool:
        """Whether this channel can reach the order's customer."""

    @abstractmethod
    async def send(self, order: Order, event: OrderEvent, content: str) -> None:
        """Send content; raise NotificationError on failure."""


class SmsChannel(Channel):
    """SMS through an HTTP gateway."""

    channel = NotificationChannel.SMS

    def __init__(self, client: httpx.AsyncClient, gateway_url: str, api_key: str | None = None):
        self.client = client
        self.gateway_url = gateway_url
        self.api_key = api_key

    def applies_to(self, order: Order) -> bool:
        return bool(order.customer.phone)

    async def send(self, order: Order, event: OrderEvent, content: str) -> None:
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        try:
            response = await self.client.post(
                self.gateway_url,
                json={"to": order.customer.phone, "message": content},
                headers=headers,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise NotificationError(self.channel.value, str(e)) from e


class EmailChannel(Channel):
    """Status emails through the mail service API."""

    channel = NotificationChannel.EMAIL

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_url: str,
        sender: str,
        api_key: str | None = None,
    ):
        self.client = client
        self.api_url = api_url
        self.sender = sender
        self.api_key = api_key

    def applies_to(self, order: Order) -> bool:
        return bool(order.customer.email)

    async def send(self, order: Order, event: OrderEvent, content: str) -> None:
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        payload = {
            "from": self.sender,
            "to": order.customer.email,
            "subject": f"Sipariş durumu: {event.description}",
            "text": content,
            "order_id": order.id,
            "status": event.status.value,
        }
        try:
            response = await self.client.post(self.api_url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise NotificationError(self.channel.value, str(e)) from e


class PushChannel(Channel):
    """Push message published on the customer's Redis channel."""

    channel = NotificationChannel.PUSH

    def __init__(self, state_manager: StateManager):
        self.state = state_manager

    def applies_to(self, order: Order) -> bool:
        return True

    async def send(self, order: Order, event: OrderEvent, content: str) -> None:
        message = json.dumps(
            {
                "order_id": order.id,
                "status": event.status.value,
                "title": "Sipariş güncellemesi",
                "body": content,
            }
        )
        try:
            await self.state.publish(f"push:{order.customer.id}", message)
        except Exception as e:
            raise NotificationError(self.channel.value, str(e)) from e


class NotificationDispatcher:
    """Consumes the event outbox and sends notifications best-effort."""

    def __init__(
        self,
        state_manager: StateManager,
        tracking_service: OrderTrackingService,
        channels: list[Channel],
    ):
        settings = get_settings()
        self.state = state_manager
        self.tracking = tracking_service
        self.channels = channels
        self.outbox_key = settings.notification_outbox_key
        self.processing_key = settings.notification_processing_key
        self.max_attempts = settings.notification_max_attempts
        self._running = False

    async def dispatch(self, event: OrderEvent) -> list[NotificationChannel]:
        """
        Send one event on every applicable channel.

        Args:
            event: Event to deliver

        Returns:
            Channels whose send failed
        """
        order = await self.tracking.repository.get_order(event.order_id)
        if not order:
            logger.warning("notification_order_missing", order_id=event.order_id)
            return []

        only: list[str] | None = event.metadata.get("retry_channels")
        content = build_message(order, event)
        records: list[NotificationRecord] = []
        failed: list[NotificationChannel] = []

        for channel in self.channels:
            if only is not None and channel.channel.value not in only:
                continue
            if not channel.applies_to(order):
                continue

            try:
                await channel.send(order, event, content)
                records.append(
                    NotificationRecord(channel=channel.channel, sent=True, content=content)
                )
            except Exception as e:
                logger.warning(
                    "notification_send_failed",
                    order_id=order.id,
                    channel=channel.channel.value,
                    attempt=event.attempts + 1,
                    error=str(e),
                )
                records.append(
                    NotificationRecord(
                        channel=channel.channel,
                        sent=False,
                        content=content,
                        error=str(e),
                    )
                )
                failed.append(channel.channel)

        if records:
            await self.tracking.record_notifications(order.id, records)

        logger.info(
            "notification_dispatched",
            order_id=order.id,
            event_type=event.event_type.value,
            sent=len(records) - len(failed),
            failed=len(failed),
        )
        return failed

    async def drain(self, limit: int | None = None) -> int:
        """Process queued events until the outbox is empty. Returns the count."""
        processed = 0

        while limit is None or processed < limit:
            raw = await self.state.lmove(self.outbox_key, self.processing_key)
            if raw is None:
                break
            await self._handle(raw)
            processed += 1

        return processed

    async def recover(self) -> int:
        """Put events left in the processing list back on the outbox.

        An event stays in the processing list until it has been sent or
        re-queued, so anything found here was interrupted mid-send.
        """
        recovered = 0
        while await self.state.lmove(self.processing_key, self.outbox_key) is not None:
            recovered += 1

        if recovered:
            logger.warning("notification_events_recovered", count=recovered)
        return recovered

    async def run(self, poll_timeout: float = 1.0) -> None:
        """Block on the outbox and dispatch events until stopped."""
        self._running = True
        logger.info("notification_dispatcher_started", outbox=self.outbox_key)

        try:
            await self.recover()
        except Exception as e:
            logger.error("notification_recovery_failed", error=str(e))

        while self._running:
            try:
                raw = await self.state.blmove(
                    self.outbox_key, self.processing_key, timeout=poll_timeout
                )
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("notification_outbox_read_failed", error=str(e))
                await asyncio.sleep(poll_timeout)
                continue

            if raw is None:
                continue

            try:
                await self._handle(raw)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # Event stays in the processing list until the next recover()
                logger.error("notification_handle_failed", error=str(e))

        logger.info("notification_dispatcher_stopped")

    def stop(self) -> None:
        """Ask the run loop to exit after the current poll."""
        self._running = False

    async def _handle(self, raw: str) -> None:
        await self._process(raw)
        await self.state.lrem(self.processing_key, raw)

    async def _process(self, raw: str) -> None:
        try:
            event = OrderEvent.model_validate_json(raw)
        except ValidationError as e:
            logger.error("notification_event_invalid", error=str(e))
            return

        try:
            failed = await self.dispatch(event)
        except Exception as e:
            logger.error("notification_dispatch_failed", order_id=event.order_id, error=str(e))
            failed = None

        if failed == []:
            return

        event.attempts += 1
        if event.attempts >= self.max_attempts:
            logger.error(
                "notification_dropped",
                order_id=event.order_id,
                event_id=event.event_id,
                attempts=event.attempts,
            )
            return

        if failed is not None:
            event.metadata["retry_channels"] = [channel.value for channel in failed]
        event.metadata["last_attempt_at"] = utcnow().isoformat()
        await self.state.rpush(self.outbox_key, event.model_dump(mode="json"))


def build_channels(state_manager: StateManager, client: httpx.AsyncClient) -> list[Channel]:
    """Channels enabled by the current settings."""
    settings = get_settings()
    channels: list[Channel] = []

    if settings.sms_gateway_url:
        channels.append(SmsChannel(client, settings.sms_gateway_url, settings.sms_api_key))

    if settings.email_api_url:
        channels.append(
            EmailChannel(
                client,
                settings.email_api_url,
                settings.email_sender,
                settings.email_api_key,
            )
        )

    channels.append(PushChannel(state_manager))
    return channels
