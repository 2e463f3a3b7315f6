from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from sessionkeeper.api import json_body
from sessionkeeper.auth import require_admin, require_membership
from sessionkeeper.errors import Forbidden
from sessionkeeper.models import CampaignMembership, PlaySession
from sessionkeeper.services.notifications import (
    SESSION_ENDED,
    SESSION_NOTE_ADDED,
    SESSION_STARTED,
    FanoutEvent,
    get_fanout,
)
from sessionkeeper.services import positions
from sessionkeeper.services.sessions import lifecycle

sessions = Blueprint('sessions', __name__)


def _announce(session: PlaySession, kind: str, title: str, message: str) -> None:
    get_fanout().emit(FanoutEvent(
        kind=kind,
        subject_id=session.id,
        campaign_id=session.campaign_id,
        title=title,
        message=message,
        payload={'session': session.to_dict()},
        affected_user_ids=session.campaign.member_user_ids(),
    ))


@sessions.route('/campaigns/<int:campaign_id>/sessions', methods=['POST'])
@login_required
def create_session(campaign_id):
    require_admin(current_user.id, campaign_id)
    data = json_body()
    session = lifecycle.create_session(campaign_id, data.get('name'), data.get('description'))
    return jsonify(session.to_dict()), 201


@sessions.route('/campaigns/<int:campaign_id>/sessions', methods=['GET'])
@login_required
def list_sessions(campaign_id):
    require_membership(current_user.id, campaign_id)
    found = lifecycle.list_campaign_sessions(
        campaign_id,
        status=request.args.get('status'),
        limit=request.args.get('limit', current_app.config.get('SESSION_PAGE_SIZE', 50), type=int),
        offset=request.args.get('offset', 0, type=int),
    )
    return jsonify([s.to_dict() for s in found])


@sessions.route('/campaigns/<int:campaign_id>/sessions/current', methods=['GET'])
@login_required
def current_session(campaign_id):
    require_membership(current_user.id, campaign_id)
    session = lifecycle.get_current_session(campaign_id)
    return jsonify({'session': session.to_dict() if session else None})


@sessions.route('/campaigns/<int:campaign_id>/sessions/analytics', methods=['GET'])
@login_required
def session_analytics(campaign_id):
    require_membership(current_user.id, campaign_id)
    return jsonify(lifecycle.get_campaign_session_analytics(campaign_id))


@sessions.route('/sessions/<int:session_id>', methods=['GET'])
@login_required
def get_session(session_id):
    session = lifecycle.get_session(session_id)
    require_membership(current_user.id, session.campaign_id)
    return jsonify(session.to_dict())


@sessions.route('/sessions/<int:session_id>/start', methods=['POST'])
@login_required
def start_session(session_id):
    """
    Starts a pending session with the characters taking part.
    """
    session = lifecycle.get_session(session_id)
    require_admin(current_user.id, session.campaign_id)
    data = json_body()
    session = lifecycle.start_session(session.id, data.get('character_ids'))
    _announce(session, SESSION_STARTED, 'Session started', f"{session.name} has started")
    return jsonify(session.to_dict())


@sessions.route('/sessions/<int:session_id>/end', methods=['POST'])
@login_required
def end_session(session_id):
    """
    Ends an active session and records experience, gold and items awarded.
    """
    session = lifecycle.get_session(session_id)
    require_admin(current_user.id, session.campaign_id)
    data = json_body()
    session = lifecycle.end_session(session.id, data, ended_by=current_user.id)
    _announce(
        session, SESSION_ENDED, 'Session ended',
        f"{session.name} has ended: {session.experience_awarded} XP, {session.gold_awarded} gold",
    )
    return jsonify(session.to_dict())


@sessions.route('/sessions/<int:session_id>/notes', methods=['POST'])
@login_required
def add_note(session_id):
    session = lifecycle.get_session(session_id)
    require_membership(current_user.id, session.campaign_id)
    data = json_body()
    note = lifecycle.add_session_note(
        session.id,
        current_user.id,
        data.get('content'),
        data.get('note_type'),
        data.get('is_public'),
    )
    # Private notes stay with their author
    if note.is_public:
        recipients = [uid for uid in session.campaign.member_user_ids() if uid != current_user.id]
        get_fanout().emit(FanoutEvent(
            kind=SESSION_NOTE_ADDED,
            subject_id=session.id,
            campaign_id=session.campaign_id,
            title='New session note',
            message=f"New {note.note_type} note on {session.name}",
            payload={'note': note.to_dict()},
            affected_user_ids=recipients,
        ))
    return jsonify(note.to_dict()), 201


@sessions.route('/sessions/<int:session_id>/notes', methods=['GET'])
@login_required
def list_notes(session_id):
    session = lifecycle.get_session(session_id)
    role = require_membership(current_user.id, session.campaign_id)
    notes = lifecycle.list_session_notes(session.id, current_user.id, is_admin=role == CampaignMembership.ADMIN)
    return jsonify([n.to_dict() for n in notes])


@sessions.route('/sessions/<int:session_id>/stats', methods=['GET'])
@login_required
def session_stats(session_id):
    session = lifecycle.get_session(session_id)
    require_membership(current_user.id, session.campaign_id)
    return jsonify(lifecycle.get_session_statistics(session.id))


@sessions.route('/sessions/<int:session_id>/participants/<int:character_id>/activity', methods=['POST'])
@login_required
def participant_activity(session_id, character_id):
    """
    Records one action or message by a participating character. Players
    report for their own characters; admins may report for anyone.
    """
    session = lifecycle.get_session(session_id)
    role = require_membership(current_user.id, session.campaign_id)
    character = positions.get_character(character_id)
    if character.user_id != current_user.id and role != CampaignMembership.ADMIN:
        raise Forbidden('Can only report activity for your own character')
    data = json_body()
    participant = lifecycle.update_participant_activity(session.id, character.id, data.get('type'))
    return jsonify(participant.to_dict())
