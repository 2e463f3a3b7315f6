from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from sessionkeeper.api import json_body
from sessionkeeper.auth import require_membership
from sessionkeeper.errors import Forbidden, NotFound, ValidationError
from sessionkeeper.models import CampaignMembership
from sessionkeeper.services import positions
from sessionkeeper.services.notifications import get_fanout
from sessionkeeper.zones import narrative_advantage

zones = Blueprint('zones', __name__)


def _campaign_character(campaign_id: int, character_id: int):
    character = positions.get_character(character_id)
    if character.campaign_id != campaign_id:
        raise NotFound('Character not found')
    return character


@zones.route('/<int:campaign_id>/characters/<int:character_id>/zone', methods=['PUT'])
@login_required
def update_zone(campaign_id, character_id):
    """
    Moves a character to another zone. Only the character's player or a
    campaign admin may do this.
    """
    role = require_membership(current_user.id, campaign_id)
    character = _campaign_character(campaign_id, character_id)
    if character.user_id != current_user.id and role != CampaignMembership.ADMIN:
        raise Forbidden('Can only update your own character zone')

    data = json_body()
    if 'zone' not in data:
        raise ValidationError('Missing zone parameter', field='zone')

    position = positions.update_character_zone(
        character.id,
        data['zone'],
        data.get('metadata'),
        actor_id=current_user.id,
        fanout=get_fanout(),
    )
    return jsonify({'success': True, 'character': position})


@zones.route('/<int:campaign_id>/characters/<int:character_id>/zone', methods=['GET'])
@login_required
def get_zone(campaign_id, character_id):
    require_membership(current_user.id, campaign_id)
    character = _campaign_character(campaign_id, character_id)
    return jsonify({'success': True, 'character': positions.get_character_zone(character.id)})


@zones.route('/<int:campaign_id>/zones', methods=['GET'])
@login_required
def characters_by_zone(campaign_id):
    require_membership(current_user.id, campaign_id)
    session_id = request.args.get('session_id', type=int)
    return jsonify(positions.characters_by_zone(campaign_id, session_id=session_id))


@zones.route('/<int:campaign_id>/zones/advantage', methods=['GET'])
@login_required
def zone_advantage(campaign_id):
    require_membership(current_user.id, campaign_id)
    attacker = request.args.get('attacker')
    target = request.args.get('target')
    action_type = request.args.get('action_type', 'melee')
    return jsonify(narrative_advantage(attacker, target, action_type))
