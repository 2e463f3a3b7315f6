from flask_socketio import join_room, leave_room, emit
from flask_login import current_user
from sessionkeeper import socketio, REALTIME_NAMESPACE
from sessionkeeper.auth import campaign_role
from sessionkeeper.services.notifications import campaign_channel


def handle_connect():
    emit('connected', {'message': f'Connected to {REALTIME_NAMESPACE}'})


def _campaign_id(data):
    raw = (data or {}).get('campaign_id')
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def handle_join_campaign(data):
    campaign_id = _campaign_id(data)
    if campaign_id is None:
        emit('error', {'message': 'campaign_id is required'})
        return
    if not current_user.is_authenticated:
        emit('error', {'message': 'Authentication required'})
        return
    # Only members may watch a campaign's live updates
    if campaign_role(current_user.id, campaign_id) is None:
        emit('error', {'message': 'Not a campaign member'})
        return
    room = campaign_channel(campaign_id)
    join_room(room)
    emit('joined', {'room': room})


def handle_leave_campaign(data):
    campaign_id = _campaign_id(data)
    if campaign_id is None:
        emit('error', {'message': 'campaign_id is required'})
        return
    room = campaign_channel(campaign_id)
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on the realtime namespace. When testing is True, also
    mirror handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = [REALTIME_NAMESPACE]
    if testing:
        namespaces.append('/')
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('join_campaign', handle_join_campaign, namespace=namespace)
        socketio.on_event('leave_campaign', handle_leave_campaign, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
