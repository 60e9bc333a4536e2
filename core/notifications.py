"""
Notification dispatcher.

The swap engine and the review subsystem describe what happened as
NotificationEvent records and hand them to the dispatcher once their
transaction has committed. Delivery is best-effort: a failing sink is
logged and never affects the operation that produced the event.

The sink is pluggable through ``settings.ECOSWAP_NOTIFICATION_SINK``;
any class with an ``emit(event)`` method will do.

The default DatabaseSink stores events as Notification rows, which form
each user's inbox; the inbox helpers at the end of this module list
them and manage their read flag.
"""

import logging
from dataclasses import dataclass, asdict

from django.conf import settings
from django.db import transaction
from django.utils.module_loading import import_string

from .exceptions import Forbidden, NotificationNotFound
from .models import Notification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationEvent:
    recipient_id: int
    kind: str
    title: str
    body: str
    sender_id: int = None
    related_item_id: int = None
    related_swap_id: int = None

    def as_dict(self):
        return asdict(self)


class DatabaseSink:
    """Default sink: stores each event as a Notification row."""

    def emit(self, event):
        Notification.objects.create(
            recipient_id=event.recipient_id,
            sender_id=event.sender_id,
            kind=event.kind,
            title=event.title,
            body=event.body,
            related_item_id=event.related_item_id,
            related_swap_id=event.related_swap_id,
        )


class LoggingSink:
    """Sink that only logs events. Useful when notifications are delivered elsewhere."""

    def emit(self, event):
        logger.info(f"Notification {event.kind} for user {event.recipient_id}: {event.title}")


class NotificationDispatcher:
    """
    Fire-and-forget front for a notification sink.

    Args:
        sink: Object with an ``emit(event)`` method, or None to drop events
    """

    def __init__(self, sink):
        self.sink = sink

    def emit(self, event):
        """
        Deliver one event. Sink errors are logged and swallowed.

        Returns:
            bool: True if the sink accepted the event
        """
        if self.sink is None:
            return False

        try:
            self.sink.emit(event)
        except Exception:
            logger.exception(
                f"Notification sink failed for {event.kind} event to user {event.recipient_id}"
            )
            return False
        return True

    def emit_on_commit(self, events):
        """
        Deliver events after the current transaction commits.

        Nothing is sent if the transaction rolls back. Outside a
        transaction the events are delivered immediately.
        """
        events = list(events)
        if not events:
            return

        def deliver():
            for event in events:
                self.emit(event)

        transaction.on_commit(deliver)


def get_dispatcher():
    """Build a dispatcher for the configured sink."""
    if not getattr(settings, 'ECOSWAP_NOTIFICATIONS_ENABLED', True):
        return NotificationDispatcher(None)

    sink_path = getattr(settings, 'ECOSWAP_NOTIFICATION_SINK', 'core.notifications.DatabaseSink')
    return NotificationDispatcher(import_string(sink_path)())


def emit_on_commit(events):
    """
    Deliver events through the configured sink once the current
    transaction commits.

    The sink is only resolved inside the commit callback, so a broken
    ``ECOSWAP_NOTIFICATION_SINK`` drops the events and leaves the
    transaction alone.
    """
    events = list(events)
    if not events:
        return

    def deliver():
        try:
            dispatcher = get_dispatcher()
        except Exception:
            logger.exception(f"Could not load notification sink; dropping {len(events)} event(s)")
            return

        for event in events:
            dispatcher.emit(event)

    transaction.on_commit(deliver)


# ============================================================================
# Inbox
# ============================================================================

def inbox(user, unread_only=False):
    """A user's stored notifications, newest first."""
    queryset = Notification.objects.filter(recipient=user).select_related('sender')
    if unread_only:
        queryset = queryset.filter(is_read=False)
    return queryset.order_by('-created_at', '-pk')


def unread_count(user):
    return Notification.objects.filter(recipient=user, is_read=False).count()


def _own_notification(notification_id, user):
    try:
        notification = Notification.objects.get(pk=notification_id)
    except Notification.DoesNotExist:
        raise NotificationNotFound()

    if notification.recipient_id != user.pk:
        raise Forbidden('You can only manage your own notifications.')
    return notification


def mark_read(notification_id, user):
    """
    Mark one of the user's notifications as read.

    Raises:
        NotificationNotFound: If the notification does not exist
        Forbidden: If the user is not its recipient
    """
    notification = _own_notification(notification_id, user)
    if not notification.is_read:
        notification.is_read = True
        notification.save(update_fields=['is_read'])
    return notification


def mark_all_read(user):
    """Mark every unread notification of the user as read; returns how many changed."""
    updated = Notification.objects.filter(recipient=user, is_read=False).update(is_read=True)
    logger.info(f"User {user.pk} marked {updated} notification(s) as read")
    return updated


def delete_notification(notification_id, user):
    """
    Delete one of the user's notifications.

    Raises:
        NotificationNotFound: If the notification does not exist
        Forbidden: If the user is not its recipient
    """
    notification = _own_notification(notification_id, user)
    notification.delete()
    logger.info(f"Notification {notification_id} deleted by user {user.pk}")
