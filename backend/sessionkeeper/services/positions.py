"""Per-character zone tracking.

A character's zone is a single overwritable value on its row: no history,
no adjacency rule, latest write wins. Callers are expected to have checked
that the actor controls the character or administers the campaign.
"""

from typing import Any, Dict, List, Optional

from flask import current_app

from sessionkeeper import db
from sessionkeeper.errors import NotFound, ValidationError
from sessionkeeper.models import Character, PlaySession
from sessionkeeper.zones import ZONE_ORDER, Zone
from .notifications import ZONE_UPDATED, FanoutEvent, NotificationFanout


def get_character(character_id: int) -> Character:
    character = db.session.get(Character, character_id)
    if character is None:
        raise NotFound('Character not found')
    return character


def update_character_zone(character_id: int, zone, metadata: Optional[Dict[str, Any]] = None, *,
                          actor_id: Optional[int] = None,
                          fanout: Optional[NotificationFanout] = None) -> Dict[str, Any]:
    new_zone = Zone.parse(zone)
    if metadata is not None and not isinstance(metadata, dict):
        raise ValidationError('metadata must be an object', field='metadata')
    character = get_character(character_id)

    previous = character.zone
    values: Dict[str, Any] = {'current_zone': new_zone.value}
    if metadata is not None:
        values['zone_metadata'] = metadata
    # Single-row UPDATE; concurrent moves simply overwrite each other
    Character.query.filter_by(id=character.id).update(values, synchronize_session=False)
    db.session.commit()
    db.session.refresh(character)
    current_app.logger.info(f"[zone] character={character.id} {previous} -> {new_zone.value} actor={actor_id}")

    position = _position(character)
    if fanout is not None:
        recipients = [uid for uid in character.campaign.member_user_ids() if uid != actor_id]
        fanout.emit(FanoutEvent(
            kind=ZONE_UPDATED,
            subject_id=character.id,
            campaign_id=character.campaign_id,
            title='Position changed',
            message=f"{character.name} moved from {previous} to {new_zone.value}",
            payload={
                'character_id': character.id,
                'character_name': character.name,
                'previous_zone': previous,
                'zone': new_zone.value,
                'actor_id': actor_id,
            },
            affected_user_ids=recipients,
        ))
    return position


def get_character_zone(character_id: int) -> Dict[str, Any]:
    return _position(get_character(character_id))


def _position(character: Character) -> Dict[str, Any]:
    return {
        'character_id': character.id,
        'name': character.name,
        'zone': character.zone,
        'metadata': character.zone_metadata or {},
    }


def characters_by_zone(campaign_id: int, session_id: Optional[int] = None) -> Dict[str, List[Dict[str, Any]]]:
    """Group characters under every zone; a session narrows it to its participants."""
    query = Character.query.filter_by(campaign_id=campaign_id)
    if session_id is not None:
        session = db.session.get(PlaySession, session_id)
        if session is None or session.campaign_id != campaign_id:
            raise NotFound('Session not found')
        query = query.filter(Character.id.in_(session.participants))
    grouped: Dict[str, List[Dict[str, Any]]] = {z.value: [] for z in ZONE_ORDER}
    for character in query.order_by(Character.id).all():
        grouped[character.zone].append(character.to_dict())
    return grouped
