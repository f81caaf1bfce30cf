from flask import jsonify, request
from flask_login import current_user
from . import notifications_bp
from models.enums import NotificationCategory, NotificationChannel
from services import get_services
from services.exceptions import ValidationError
from utils.forms import enum_arg, bool_arg

SETTINGS_SECTIONS = ('channels', 'categories', 'advanced_settings')


def _validate_settings_payload(payload):
    """Settings are free-form JSON; only the overall shape is enforced."""
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')

    errors = {}
    for key in payload:
        if key not in SETTINGS_SECTIONS:
            errors[key] = ['Unknown settings section']

    channels = payload.get('channels')
    if channels is not None:
        if not isinstance(channels, dict) or not all(isinstance(v, bool) for v in channels.values()):
            errors['channels'] = ['Expected an object of channel -> boolean']

    categories = payload.get('categories')
    if categories is not None:
        valid = isinstance(categories, dict) and all(
            isinstance(toggles, dict) and all(isinstance(v, bool) for v in toggles.values())
            for toggles in categories.values()
        )
        if not valid:
            errors['categories'] = ['Expected an object of category -> {channel: boolean}']

    advanced = payload.get('advanced_settings')
    if advanced is not None and not isinstance(advanced, dict):
        errors['advanced_settings'] = ['Expected an object']

    if errors:
        raise ValidationError('Invalid notification settings', errors=errors)
    return payload


@notifications_bp.route('', methods=['GET'])
def index():
    result = get_services().notification_service.get_user_notifications(
        current_user.id,
        page=request.args.get('page', 1, type=int),
        limit=request.args.get('limit', 20, type=int),
        unread_only=bool_arg('unread_only') or False,
        category=enum_arg('category', NotificationCategory),
        channel=enum_arg('channel', NotificationChannel),
    )
    result['notifications'] = [n.to_dict() for n in result['notifications']]
    return jsonify(result)


@notifications_bp.route('/unread', methods=['GET'])
def unread():
    result = get_services().notification_service.get_user_notifications(
        current_user.id,
        page=request.args.get('page', 1, type=int),
        limit=request.args.get('limit', 20, type=int),
        unread_only=True,
    )
    result['notifications'] = [n.to_dict() for n in result['notifications']]
    return jsonify(result)


@notifications_bp.route('/unread-count', methods=['GET'])
def unread_count():
    count = get_services().notification_service.get_unread_count(current_user.id)
    return jsonify({'unread_count': count})


@notifications_bp.route('/<int:notification_id>/read', methods=['PUT'])
def mark_read(notification_id):
    updated = get_services().notification_service.mark_as_read(notification_id, current_user.id)
    return jsonify({'updated': updated})


@notifications_bp.route('/read-all', methods=['PUT'])
def mark_all_read():
    updated = get_services().notification_service.mark_all_as_read(current_user.id)
    return jsonify({'updated': updated})


@notifications_bp.route('/<int:notification_id>', methods=['DELETE'])
def delete(notification_id):
    deleted = get_services().notification_service.delete_notification(notification_id, current_user.id)
    return jsonify({'deleted': deleted})


@notifications_bp.route('/settings', methods=['GET'])
def get_settings():
    settings = get_services().notification_service.get_notification_settings(current_user.id)
    return jsonify({'settings': settings.to_dict()})


@notifications_bp.route('/settings', methods=['PUT'])
def update_settings():
    payload = _validate_settings_payload(request.get_json(silent=True))
    settings = get_services().notification_service.update_notification_settings(current_user.id, payload)
    return jsonify({'settings': settings.to_dict()})


@notifications_bp.route('/test-email', methods=['POST'])
def test_email():
    sent = get_services().notification_service.send_test_email(current_user.id)
    return jsonify({'sent': sent, 'email': current_user.email})


@notifications_bp.route('/push/vapid-public-key', methods=['GET'])
def vapid_public_key():
    push_service = get_services().push_service
    return jsonify({'public_key': push_service.public_key, 'configured': push_service.configured})


@notifications_bp.route('/push/subscribe', methods=['POST'])
def push_subscribe():
    subscription = get_services().push_service.save_subscription(
        current_user.id,
        request.get_json(silent=True),
        user_agent=request.headers.get('User-Agent'),
    )
    return jsonify({'subscription': subscription.to_dict()}), 201


@notifications_bp.route('/push/subscribe', methods=['DELETE'])
def push_unsubscribe():
    payload = request.get_json(silent=True) or {}
    endpoint = payload.get('endpoint')
    if not isinstance(endpoint, str) or not endpoint:
        raise ValidationError('endpoint is required', errors={'endpoint': ['This field is required.']})
    deleted = get_services().push_service.remove_subscription(current_user.id, endpoint)
    return jsonify({'deleted': deleted})


@notifications_bp.route('/push/test', methods=['POST'])
def push_test():
    sent = get_services().push_service.send_test(current_user.id)
    return jsonify({'sent': sent})
