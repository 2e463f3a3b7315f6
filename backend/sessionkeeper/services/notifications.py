"""Notification fanout and the per-user notification inbox.

A lifecycle or position change becomes one durable ``Notification`` row per
affected user plus a single broadcast on the campaign's realtime channel. The
two deliveries are independent and best-effort: neither failure is surfaced to
the caller and neither rolls back the other. Emitting the same event twice
creates duplicate rows.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from sessionkeeper import db
from sessionkeeper.errors import NotFound, ValidationError
from sessionkeeper.models import Notification, utcnow

SESSION_STARTED = 'session_started'
SESSION_ENDED = 'session_ended'
SESSION_NOTE_ADDED = 'session_note_added'
ZONE_UPDATED = 'zone_updated'


def campaign_channel(campaign_id: int) -> str:
    return f"campaign:{campaign_id}"


@dataclass
class FanoutEvent:
    kind: str
    subject_id: int
    campaign_id: int
    title: str
    message: str
    payload: Dict[str, Any] = field(default_factory=dict)
    affected_user_ids: List[int] = field(default_factory=list)


class SocketIOPublisher:
    """Publishes to Socket.IO rooms through the process-wide server handle."""

    def __init__(self, socketio, namespace: str = '/ws'):
        self._socketio = socketio
        self._namespace = namespace

    def publish(self, channel: str, event: str, payload: Dict[str, Any]) -> None:
        self._socketio.emit(event, payload, to=channel, namespace=self._namespace)


class NotificationFanout:
    def __init__(self, publisher):
        self.publisher = publisher

    def emit(self, event: FanoutEvent) -> int:
        """Deliver ``event``; returns how many durable records were written."""
        written = 0
        try:
            written = self._write_records(event)
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.warning(
                f"[fanout-store-failed] kind={event.kind} subject={event.subject_id} error={exc}"
            )

        channel = campaign_channel(event.campaign_id)
        try:
            self.publisher.publish(channel, event.kind, {**event.payload, 'subject_id': event.subject_id})
        except Exception as exc:
            current_app.logger.warning(
                f"[fanout-publish-failed] kind={event.kind} channel={channel} error={exc}"
            )

        current_app.logger.info(
            f"[fanout] kind={event.kind} subject={event.subject_id} channel={channel} records={written}"
        )
        return written

    def _write_records(self, event: FanoutEvent) -> int:
        for user_id in event.affected_user_ids:
            db.session.add(Notification(
                user_id=user_id,
                campaign_id=event.campaign_id,
                type=event.kind,
                title=event.title,
                message=event.message,
                payload=event.payload,
            ))
        db.session.commit()
        return len(event.affected_user_ids)


def get_fanout() -> NotificationFanout:
    return current_app.extensions['notification_fanout']


# ---- Inbox ----

_STATUSES = (Notification.UNREAD, Notification.READ, Notification.DISMISSED)


def list_notifications(user_id: int, status: Optional[str] = None, campaign_id: Optional[int] = None,
                       limit: int = 20, offset: int = 0) -> List[Notification]:
    query = Notification.query.filter_by(user_id=user_id)
    if status is not None:
        if status not in _STATUSES:
            raise ValidationError(f"status must be one of {', '.join(_STATUSES)}", field='status')
        query = query.filter_by(status=status)
    if campaign_id is not None:
        query = query.filter_by(campaign_id=campaign_id)
    return (
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset(max(0, offset))
        .limit(max(1, limit))
        .all()
    )


def _owned_notification(notification_id: int, user_id: int) -> Notification:
    notification = Notification.query.filter_by(id=notification_id, user_id=user_id).first()
    if notification is None:
        raise NotFound('Notification not found')
    return notification


def mark_as_read(notification_id: int, user_id: int) -> Notification:
    notification = _owned_notification(notification_id, user_id)
    notification.status = Notification.READ
    notification.read_at = utcnow()
    db.session.commit()
    return notification


def dismiss(notification_id: int, user_id: int) -> Notification:
    notification = _owned_notification(notification_id, user_id)
    notification.status = Notification.DISMISSED
    notification.dismissed_at = utcnow()
    db.session.commit()
    return notification


def unread_count(user_id: int, campaign_id: Optional[int] = None) -> int:
    query = Notification.query.filter_by(user_id=user_id, status=Notification.UNREAD)
    if campaign_id is not None:
        query = query.filter_by(campaign_id=campaign_id)
    return query.count()
