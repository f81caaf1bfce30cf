"""
In-process events.

``notification_created`` is sent after a Notification row is persisted, with
the notification as the ``notification`` keyword.  Push or websocket delivery
can subscribe here without touching NotificationService.  PUSH-channel
notifications are delivered by ``deliver_push_notification``.
"""
from blinker import Namespace

autocare_signals = Namespace()

notification_created = autocare_signals.signal('notification-created')


def log_notification_created(sender, notification=None, **extra):
    from flask import current_app
    current_app.logger.info(
        f"Notification {notification.id} created for user {notification.user_id}: "
        f"{notification.type} [{notification.channel}/{notification.category}]"
    )


def deliver_push_notification(sender, notification=None, **extra):
    from flask import current_app
    from models.enums import NotificationChannel
    from services import get_services
    if notification.channel != NotificationChannel.PUSH.value:
        return
    try:
        get_services().push_service.send_notification(notification)
    except Exception:
        current_app.logger.exception(f"Error sending push for notification {notification.id}")
