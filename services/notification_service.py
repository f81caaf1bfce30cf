"""
Notification Service
====================
Creates, lists and mutates Notification rows, enforcing each user's delivery
preferences.

Preference gate
---------------
``create_notification`` consults the user's UserSettings (created with
defaults on first access).  If the channel is switched off globally, or the
notification's category is switched off for that channel, the call is a
silent no-op returning ``None``.  Missing keys count as enabled.

Ownership
---------
Every mutation is scoped by (notification id AND user id).  A caller that
does not own the notification affects zero rows; no error is raised.
"""
import copy
import math

from flask import current_app

from extensions import db
from models.notifications import Notification
from models.settings import UserSettings
from models.users import User
from models.enums import NotificationChannel, NotificationCategory
from services.signals import notification_created


class NotificationService:

    def __init__(self, email_service):
        self.email_service = email_service

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_notification(self, user_id, type, title, message, data=None,
                            channel=NotificationChannel.IN_APP, category=None):
        """
        Persist a notification unless the user's preferences suppress it.

        Returns the Notification, or None when suppressed.
        """
        channel = NotificationChannel(channel)
        category = category or NotificationCategory.SYSTEM
        category = category.value if isinstance(category, NotificationCategory) else str(category)

        settings = self.get_notification_settings(user_id)
        channel_key = channel.settings_key

        if not settings.channel_enabled(channel_key):
            current_app.logger.debug(
                f"Notification '{type}' for user {user_id} suppressed: channel {channel_key} disabled"
            )
            return None
        if not settings.category_enabled(category, channel_key):
            current_app.logger.debug(
                f"Notification '{type}' for user {user_id} suppressed: {category}.{channel_key} disabled"
            )
            return None

        notification = Notification(
            user_id=user_id,
            type=type.value if hasattr(type, 'value') else type,
            title=title,
            message=message,
            data=data,
            read=False,
            channel=channel.value,
            category=category,
        )
        db.session.add(notification)
        db.session.commit()

        if channel == NotificationChannel.EMAIL:
            self._deliver_email(notification)

        notification_created.send(self, notification=notification)
        return notification

    def _deliver_email(self, notification):
        """Email failures never undo the persisted notification."""
        try:
            user = db.session.get(User, notification.user_id)
            if user is None or not user.email:
                current_app.logger.warning(f"No email address for user {notification.user_id}")
                return
            sent = self.email_service.send_notification_email(user.email, notification.title,
                                                              notification.message)
            if not sent:
                current_app.logger.warning(f"Email for notification {notification.id} was not delivered")
        except Exception:
            current_app.logger.exception(f"Error sending email for notification {notification.id}")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_user_notifications(self, user_id, page=1, limit=20, unread_only=False,
                               category=None, channel=None):
        """Paginated notifications for a user, newest first."""
        page = max(1, int(page or 1))
        limit = max(1, int(limit or 20))

        query = Notification.query.filter_by(user_id=user_id)
        if unread_only:
            query = query.filter_by(read=False)
        if category:
            query = query.filter_by(category=category)
        if channel:
            query = query.filter_by(channel=channel)

        total = query.count()
        notifications = query.order_by(
            Notification.created_at.desc(), Notification.id.desc()
        ).offset((page - 1) * limit).limit(limit).all()

        return {
            'notifications': notifications,
            'total': total,
            'unread_count': self.get_unread_count(user_id),
            'page': page,
            'limit': limit,
            'total_pages': math.ceil(total / limit) if total else 0,
        }

    def get_unread_count(self, user_id):
        return Notification.query.filter_by(user_id=user_id, read=False).count()

    # ------------------------------------------------------------------
    # Mutations (scoped by id AND user)
    # ------------------------------------------------------------------

    def mark_as_read(self, notification_id, user_id):
        updated = Notification.query.filter_by(id=notification_id, user_id=user_id).update(
            {'read': True}, synchronize_session=False
        )
        db.session.commit()
        return updated

    def mark_all_as_read(self, user_id):
        updated = Notification.query.filter_by(user_id=user_id, read=False).update(
            {'read': True}, synchronize_session=False
        )
        db.session.commit()
        return updated

    def delete_notification(self, notification_id, user_id):
        deleted = Notification.query.filter_by(id=notification_id, user_id=user_id).delete(
            synchronize_session=False
        )
        db.session.commit()
        return deleted

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def get_notification_settings(self, user_id):
        """Get the user's settings, creating the defaults on first access."""
        settings = UserSettings.query.filter_by(user_id=user_id).first()
        if settings is None:
            settings = UserSettings.with_defaults(user_id)
            db.session.add(settings)
            db.session.commit()
        return settings

    def update_notification_settings(self, user_id, partial):
        """
        Merge *partial* over the stored settings.

        ``channels`` and ``advanced_settings`` merge key by key; ``categories``
        merge per category, so ``{'categories': {'system': {'email': True}}}``
        leaves ``system.in_app`` and every other category untouched.
        """
        settings = self.get_notification_settings(user_id)
        partial = partial or {}

        if partial.get('channels'):
            channels = copy.deepcopy(settings.channels or {})
            channels.update(partial['channels'])
            settings.channels = channels

        if partial.get('categories'):
            categories = copy.deepcopy(settings.categories or {})
            for name, toggles in partial['categories'].items():
                merged = dict(categories.get(name) or {})
                merged.update(toggles or {})
                categories[name] = merged
            settings.categories = categories

        if partial.get('advanced_settings'):
            advanced = copy.deepcopy(settings.advanced_settings or {})
            advanced.update(partial['advanced_settings'])
            settings.advanced_settings = advanced

        db.session.commit()
        return settings

    def send_test_email(self, user_id):
        user = db.session.get(User, user_id)
        if user is None:
            return False
        return self.email_service.send_test_email(user.email, user.name)
