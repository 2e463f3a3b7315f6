import json
from typing import Any, Callable, Dict, Iterable, List, Optional

from flask import current_app
from sqlalchemy import func

from sessionkeeper import db
from sessionkeeper.errors import InvalidStateTransition, NotFound, ValidationError
from sessionkeeper.models import Character, PlaySession, SessionNote, SessionParticipant, utcnow
from .fsm import next_status

DEFAULT_NOTE_TYPE = 'general'
SUMMARY_NOTE_TYPE = 'summary'
ACTIVITY_TYPES = ('action', 'message')
_STATUSES = (PlaySession.PENDING, PlaySession.ACTIVE, PlaySession.ENDED)


def get_session(session_id: int) -> PlaySession:
    session = db.session.get(PlaySession, session_id)
    if session is None:
        raise NotFound('Session not found')
    return session


def _transition(session: PlaySession, event: str, values: Dict[str, Any],
                after: Optional[Callable[[], None]] = None) -> PlaySession:
    """Move ``session`` along ``event`` with a compare-and-set on its status.

    The UPDATE only matches while the row still holds the status we read, so
    two racing requests cannot both apply the same transition. ``after`` runs
    inside the same transaction, only once the UPDATE has matched.
    """
    source = session.status
    target = next_status(source, event)
    matched = (
        PlaySession.query
        .filter_by(id=session.id, status=source)
        .update({**values, 'status': target}, synchronize_session=False)
    )
    if matched != 1:
        db.session.rollback()
        raise InvalidStateTransition(f"Session {session.id} is no longer {source}")
    if after is not None:
        after()
    db.session.commit()
    db.session.refresh(session)
    return session


def _validate_participants(session: PlaySession, character_ids) -> List[Character]:
    if not isinstance(character_ids, (list, tuple)) or not character_ids:
        raise ValidationError('At least one character required', field='character_ids')
    ordered: List[int] = []
    for cid in character_ids:
        if isinstance(cid, bool) or not isinstance(cid, int):
            raise ValidationError('Character ids must be integers', field='character_ids')
        if cid not in ordered:
            ordered.append(cid)
    found = {
        c.id: c for c in Character.query.filter(
            Character.id.in_(ordered), Character.campaign_id == session.campaign_id
        ).all()
    }
    missing = [cid for cid in ordered if cid not in found]
    if missing:
        raise ValidationError(
            f"Characters not in this campaign: {', '.join(str(m) for m in missing)}",
            field='character_ids',
        )
    return [found[cid] for cid in ordered]


def _non_negative_int(summary: Dict[str, Any], key: str) -> int:
    value = summary.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{key} must be a whole number", field=key)
    if value < 0:
        raise ValidationError(f"{key} cannot be negative", field=key)
    return value


def create_session(campaign_id: int, name: str, description: Optional[str] = None) -> PlaySession:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError('Name is required', field='name')
    last_number = (
        db.session.query(func.max(PlaySession.session_number))
        .filter(PlaySession.campaign_id == campaign_id)
        .scalar()
    )
    session = PlaySession(
        campaign_id=campaign_id,
        name=name.strip(),
        description=description,
        session_number=(last_number or 0) + 1,
        status=PlaySession.PENDING,
    )
    db.session.add(session)
    db.session.commit()
    current_app.logger.info(f"[session-create] campaign={campaign_id} session={session.id} number={session.session_number}")
    return session


def start_session(session_id: int, character_ids: Iterable[int]) -> PlaySession:
    """Start a PENDING session with its participant list.

    Participants are written once, in the same conditional update that flips
    the status, so a repeated start cannot replace them.
    """
    session = get_session(session_id)
    characters = _validate_participants(session, character_ids)
    now = utcnow()

    def add_participants():
        db.session.add_all([
            SessionParticipant(
                session_id=session.id,
                character_id=c.id,
                user_id=c.user_id,
                attendance_status=SessionParticipant.PRESENT,
                joined_at=now,
            )
            for c in characters
        ])

    _transition(session, 'begin', {'started_at': now}, after=add_participants)
    current_app.logger.info(f"[session-start] session={session.id} participants={[c.id for c in characters]}")
    return session


def end_session(session_id: int, summary: Optional[Dict[str, Any]] = None,
                ended_by: Optional[int] = None) -> PlaySession:
    """End an ACTIVE session and record what the party was awarded.

    Validation happens before anything is written; an invalid summary leaves
    the session untouched.
    """
    if summary is None:
        summary = {}
    if not isinstance(summary, dict):
        raise ValidationError('Summary must be an object', field='summary')
    experience = _non_negative_int(summary, 'experience_awarded')
    gold = _non_negative_int(summary, 'gold_awarded')
    items = summary.get('items_awarded')
    if items is None:
        items = []
    if not isinstance(items, list) or not all(isinstance(i, str) for i in items):
        raise ValidationError('items_awarded must be a list of item references', field='items_awarded')
    notes = summary.get('notes')
    if notes is not None and not isinstance(notes, str):
        raise ValidationError('notes must be text', field='notes')

    session = get_session(session_id)
    now = utcnow()
    duration = None
    if session.started_at:
        duration = round((now - session.started_at).total_seconds() / 60)

    def close_attendance():
        (SessionParticipant.query
         .filter_by(session_id=session.id, left_at=None)
         .update({'left_at': now}, synchronize_session=False))
    _transition(session, 'finish', {
        'experience_awarded': experience,
        'gold_awarded': gold,
        'items_awarded': json.dumps(items),
        'summary_notes': notes,
        'ended_at': now,
        'duration_minutes': duration,
    }, after=close_attendance)
    current_app.logger.info(f"[session-end] session={session.id} xp={experience} gold={gold} items={len(items)}")

    if notes and notes.strip() and ended_by is not None:
        add_session_note(session.id, ended_by, notes, SUMMARY_NOTE_TYPE, True)
    return session


def add_session_note(session_id: int, author_id: int, content: str,
                     note_type: Optional[str] = None, is_public: Optional[bool] = None) -> SessionNote:
    """Append a note; allowed whatever the session's status."""
    if not isinstance(content, str) or not content.strip():
        raise ValidationError('Content is required', field='content')
    if note_type is not None and (not isinstance(note_type, str) or not note_type.strip()):
        raise ValidationError('note_type must be non-empty text', field='note_type')
    if is_public is not None and not isinstance(is_public, bool):
        raise ValidationError('is_public must be true or false', field='is_public')
    session = get_session(session_id)
    note = SessionNote(
        session_id=session.id,
        author_id=author_id,
        content=content.strip(),
        note_type=note_type.strip() if note_type else DEFAULT_NOTE_TYPE,
        is_public=True if is_public is None else is_public,
    )
    db.session.add(note)
    db.session.commit()
    return note


def update_participant_activity(session_id: int, character_id: int, activity_type: str) -> SessionParticipant:
    """Count one action or message for a character taking part in the session."""
    if activity_type not in ACTIVITY_TYPES:
        raise ValidationError(f"activity type must be one of {', '.join(ACTIVITY_TYPES)}", field='type')
    session = get_session(session_id)
    column = (SessionParticipant.actions_count if activity_type == 'action'
              else SessionParticipant.messages_count)
    # Increment in SQL so concurrent reports are never lost
    matched = (
        SessionParticipant.query
        .filter_by(session_id=session.id, character_id=character_id)
        .update({column: column + 1}, synchronize_session=False)
    )
    if matched != 1:
        db.session.rollback()
        raise NotFound('Participant not found')
    db.session.commit()
    return SessionParticipant.query.filter_by(session_id=session.id, character_id=character_id).one()


def list_session_notes(session_id: int, viewer_id: int, is_admin: bool = False) -> List[SessionNote]:
    session = get_session(session_id)
    query = SessionNote.query.filter_by(session_id=session.id)
    if not is_admin:
        query = query.filter(db.or_(SessionNote.is_public.is_(True), SessionNote.author_id == viewer_id))
    return query.order_by(SessionNote.id).all()


def list_campaign_sessions(campaign_id: int, status: Optional[str] = None,
                           limit: int = 50, offset: int = 0) -> List[PlaySession]:
    query = PlaySession.query.filter_by(campaign_id=campaign_id)
    if status is not None:
        if status not in _STATUSES:
            raise ValidationError(f"status must be one of {', '.join(_STATUSES)}", field='status')
        query = query.filter_by(status=status)
    return (
        query.order_by(PlaySession.session_number.desc())
        .offset(max(0, offset))
        .limit(max(1, limit))
        .all()
    )


def get_current_session(campaign_id: int) -> Optional[PlaySession]:
    return (
        PlaySession.query.filter_by(campaign_id=campaign_id, status=PlaySession.ACTIVE)
        .order_by(PlaySession.session_number.desc())
        .first()
    )


def get_session_statistics(session_id: int) -> Dict[str, Any]:
    session = get_session(session_id)
    items = session.items or []
    return {
        'session_id': session.id,
        'status': session.status,
        'participant_count': len(session.participant_rows),
        'note_count': len(session.notes),
        'total_actions': sum(p.actions_count for p in session.participant_rows),
        'total_messages': sum(p.messages_count for p in session.participant_rows),
        'duration_minutes': session.duration_minutes,
        'experience_awarded': session.experience_awarded or 0,
        'gold_awarded': session.gold_awarded or 0,
        'items_awarded': len(items),
    }


def get_campaign_session_analytics(campaign_id: int) -> Dict[str, Any]:
    sessions = PlaySession.query.filter_by(campaign_id=campaign_id).all()
    ended = [s for s in sessions if s.status == PlaySession.ENDED]
    total_duration = sum(s.duration_minutes or 0 for s in ended)
    total_participants = sum(len(s.participants) for s in sessions)
    return {
        'total_sessions': len(sessions),
        'ended_sessions': len(ended),
        'average_duration': round(total_duration / len(ended)) if ended else 0,
        'average_participants': round(total_participants / len(sessions), 1) if sessions else 0,
        'total_experience_awarded': sum(s.experience_awarded or 0 for s in sessions),
        'total_gold_awarded': sum(s.gold_awarded or 0 for s in sessions),
    }
