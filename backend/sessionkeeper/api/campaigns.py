from flask import Blueprint, jsonify
from flask_login import login_required, current_user
from sessionkeeper import db
from sessionkeeper.api import json_body
from sessionkeeper.auth import require_membership
from sessionkeeper.errors import NotFound
from sessionkeeper.models import Campaign, CampaignMembership, Character

campaigns = Blueprint('campaigns', __name__)


@campaigns.route('', methods=['POST'])
@login_required
def create_campaign():
    """
    Creates a campaign and makes the current user its admin.
    """
    data = json_body()
    title = (data.get('title') or '').strip()
    if not title:
        return jsonify({'error': 'Title is required', 'code': 'validation_error', 'field': 'title'}), 400

    campaign = Campaign(title=title, owner_id=current_user.id)
    db.session.add(campaign)
    db.session.flush()
    db.session.add(CampaignMembership(user_id=current_user.id, campaign_id=campaign.id,
                                      role=CampaignMembership.ADMIN))
    db.session.commit()
    return jsonify(campaign.to_dict()), 201


@campaigns.route('/<int:campaign_id>/join', methods=['POST'])
@login_required
def join_campaign(campaign_id):
    """
    Adds the current user to the campaign as a plain member.
    """
    campaign = db.session.get(Campaign, campaign_id)
    if campaign is None:
        raise NotFound('Campaign not found')

    membership = CampaignMembership.query.filter_by(user_id=current_user.id, campaign_id=campaign.id).first()
    if membership:
        return jsonify({'error': 'You are already in this campaign'}), 400

    membership = CampaignMembership(user_id=current_user.id, campaign_id=campaign.id,
                                    role=CampaignMembership.MEMBER)
    db.session.add(membership)
    db.session.commit()
    return jsonify(membership.to_dict()), 201


@campaigns.route('/<int:campaign_id>/characters', methods=['POST'])
@login_required
def create_character(campaign_id):
    """
    Creates a character controlled by the current user.
    """
    require_membership(current_user.id, campaign_id)
    data = json_body()
    name = (data.get('name') or '').strip()
    if not name:
        return jsonify({'error': 'Name is required', 'code': 'validation_error', 'field': 'name'}), 400

    character = Character(name=name, campaign_id=campaign_id, user_id=current_user.id)
    db.session.add(character)
    db.session.commit()
    return jsonify(character.to_dict()), 201
