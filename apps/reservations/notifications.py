"""Guest e-mail notifications driven by reservation domain events."""

from __future__ import annotations

import logging

from django.conf import settings  # type: ignore
from django.core.mail import send_mail  # type: ignore

from shared.application.message_bus import MessageBus

from apps.reservations.domain.events import BookingCreated, BookingDeleted, BookingUpdated

logger = logging.getLogger(__name__)


def send_email_notification(recipient_email: str, subject: str, message: str) -> bool:
    """Send a plain-text e-mail; failures are logged, never raised."""
    try:
        send_mail(
            subject=subject,
            message=message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient_email],
            fail_silently=False,
        )
    except Exception as e:
        logger.error(f"Failed to send email to {recipient_email}: {e}", exc_info=True)
        return False
    logger.info(f"Email sent successfully to {recipient_email}: {subject}")
    return True


def notify_booking_created(event: BookingCreated):
    if event.skip_notification or not event.email:
        return
    send_email_notification(
        event.email,
        f"Booking {event.booking_id} received",
        (
            f"Your booking {event.booking_id} of rooms {', '.join(event.rooms)} "
            f"for {event.dates} has been stored.\n"
            f"Price: {event.total_price}"
        ),
    )


def notify_booking_updated(event: BookingUpdated):
    if event.skip_notification or not event.email:
        return
    send_email_notification(
        event.email,
        f"Booking {event.booking_id} updated",
        (
            f"Your booking {event.booking_id} has been changed "
            f"({', '.join(event.changed_fields)}).\n"
            f"Price: {event.total_price}"
        ),
    )


def notify_booking_deleted(event: BookingDeleted):
    if event.skip_notification or not event.email:
        return
    send_email_notification(
        event.email,
        f"Booking {event.booking_id} cancelled",
        f"Your booking {event.booking_id} has been cancelled.",
    )


def register(bus: MessageBus):
    bus.register_event_handler(BookingCreated, notify_booking_created)
    bus.register_event_handler(BookingUpdated, notify_booking_updated)
    bus.register_event_handler(BookingDeleted, notify_booking_deleted)
