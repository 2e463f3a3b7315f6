from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from sessionkeeper.services import notifications as inbox

notifications = Blueprint('notifications', __name__)


@notifications.route('', methods=['GET'])
@login_required
def list_notifications():
    limit = request.args.get('limit', current_app.config.get('NOTIFICATION_PAGE_SIZE', 20), type=int)
    offset = request.args.get('offset', 0, type=int)
    found = inbox.list_notifications(
        current_user.id,
        status=request.args.get('status'),
        campaign_id=request.args.get('campaign_id', type=int),
        limit=limit,
        offset=offset,
    )
    return jsonify({
        'notifications': [n.to_dict() for n in found],
        'has_more': len(found) == limit,
    })


@notifications.route('/unread-count', methods=['GET'])
@login_required
def unread_count():
    count = inbox.unread_count(current_user.id, campaign_id=request.args.get('campaign_id', type=int))
    return jsonify({'count': count})


@notifications.route('/<int:notification_id>/read', methods=['POST'])
@login_required
def mark_read(notification_id):
    return jsonify(inbox.mark_as_read(notification_id, current_user.id).to_dict())


@notifications.route('/<int:notification_id>/dismiss', methods=['POST'])
@login_required
def dismiss(notification_id):
    return jsonify(inbox.dismiss(notification_id, current_user.id).to_dict())
