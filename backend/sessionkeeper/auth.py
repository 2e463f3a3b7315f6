from sessionkeeper import db
from sessionkeeper.errors import Forbidden, NotFound
from sessionkeeper.models import Campaign, CampaignMembership


def campaign_role(user_id: int, campaign_id: int) -> str | None:
    """Return 'ADMIN' or 'MEMBER' for the user's membership, or None."""
    membership = CampaignMembership.query.filter_by(user_id=user_id, campaign_id=campaign_id).first()
    return membership.role if membership else None


def require_membership(user_id: int, campaign_id: int) -> str:
    if db.session.get(Campaign, campaign_id) is None:
        raise NotFound('Campaign not found')
    role = campaign_role(user_id, campaign_id)
    if role is None:
        raise Forbidden('Not a campaign member')
    return role


def require_admin(user_id: int, campaign_id: int) -> None:
    if require_membership(user_id, campaign_id) != CampaignMembership.ADMIN:
        raise Forbidden('Only a campaign admin may do this')
