import pytest
from sqlalchemy.exc import OperationalError

from sessionkeeper.errors import NotFound, ValidationError
from sessionkeeper.models import Notification
from sessionkeeper.services import notifications
from sessionkeeper.services.notifications import FanoutEvent, NotificationFanout, get_fanout


class BrokenPublisher:
    def __init__(self):
        self.attempts = 0

    def publish(self, channel, event, payload):
        self.attempts += 1
        raise ConnectionError('realtime transport unavailable')


def _event(world, **overrides):
    fields = dict(
        kind=notifications.SESSION_STARTED,
        subject_id=world['session'],
        campaign_id=world['campaign'],
        title='Session started',
        message='Into the Keep has started',
        payload={'session_id': world['session']},
        affected_user_ids=list(world['users'].values()),
    )
    fields.update(overrides)
    return FanoutEvent(**fields)


def test_emit_writes_one_record_per_user_and_one_broadcast(app_ctx, world, publisher):
    written = get_fanout().emit(_event(world))

    assert written == 3
    assert {n.user_id for n in Notification.query.all()} == set(world['users'].values())
    assert publisher.messages == [(
        f"campaign:{world['campaign']}",
        notifications.SESSION_STARTED,
        {'session_id': world['session'], 'subject_id': world['session']},
    )]


def test_repeated_emission_duplicates_records(app_ctx, world, publisher):
    fanout = get_fanout()
    event = _event(world, affected_user_ids=[world['users']['alice']])
    fanout.emit(event)
    fanout.emit(event)
    assert Notification.query.filter_by(user_id=world['users']['alice']).count() == 2
    assert len(publisher.messages) == 2


def test_publish_failure_keeps_durable_records(app_ctx, world):
    broken = BrokenPublisher()
    fanout = NotificationFanout(broken)

    assert fanout.emit(_event(world)) == 3
    assert broken.attempts == 1
    assert Notification.query.count() == 3


def test_store_failure_still_publishes(app_ctx, world, publisher, monkeypatch):
    fanout = get_fanout()

    def failing_write(event):
        raise OperationalError('INSERT INTO notification', {}, Exception('database is gone'))

    monkeypatch.setattr(fanout, '_write_records', failing_write)

    assert fanout.emit(_event(world)) == 0
    assert len(publisher.messages) == 1
    assert Notification.query.count() == 0


def test_empty_audience_still_broadcasts(app_ctx, world, publisher):
    assert get_fanout().emit(_event(world, affected_user_ids=[])) == 0
    assert len(publisher.messages) == 1


def test_inbox_listing_read_and_dismiss(app_ctx, world, publisher):
    alice, bob = world['users']['alice'], world['users']['bob']
    fanout = get_fanout()
    fanout.emit(_event(world, affected_user_ids=[alice, bob]))
    fanout.emit(_event(world, kind=notifications.SESSION_ENDED, title='Session ended', affected_user_ids=[alice]))

    inbox = notifications.list_notifications(alice)
    assert [n.type for n in inbox] == [notifications.SESSION_ENDED, notifications.SESSION_STARTED]
    assert notifications.unread_count(alice) == 2
    assert notifications.unread_count(alice, campaign_id=world['campaign']) == 2

    read = notifications.mark_as_read(inbox[0].id, alice)
    assert read.status == Notification.READ
    assert read.read_at is not None
    assert notifications.unread_count(alice) == 1

    dismissed = notifications.dismiss(inbox[1].id, alice)
    assert dismissed.status == Notification.DISMISSED
    assert [n.id for n in notifications.list_notifications(alice, status=Notification.DISMISSED)] == [inbox[1].id]

    with pytest.raises(NotFound):
        notifications.mark_as_read(inbox[0].id, bob)
    with pytest.raises(ValidationError):
        notifications.list_notifications(alice, status='ARCHIVED')


def test_inbox_paging(app_ctx, world, publisher):
    alice = world['users']['alice']
    for i in range(5):
        get_fanout().emit(_event(world, message=f"event {i}", affected_user_ids=[alice]))
    first = notifications.list_notifications(alice, limit=2)
    second = notifications.list_notifications(alice, limit=2, offset=2)
    assert [n.message for n in first] == ['event 4', 'event 3']
    assert [n.message for n in second] == ['event 2', 'event 1']
