"""
Tests for NotificationService: preference gating, settings defaults and
merge, pagination, and (id, user)-scoped mutations.
"""
from datetime import datetime, timedelta

import pytest

from extensions import db
from models.notifications import Notification
from models.settings import UserSettings, DEFAULT_CATEGORIES, DEFAULT_CHANNELS


def _notify(services, user, **overrides):
    fields = dict(user_id=user.id, type='SYSTEM_UPDATE', title='Hello', message='World')
    fields.update(overrides)
    return services.notification_service.create_notification(**fields)


# ---------------------------------------------------------------------------
# Preference gate
# ---------------------------------------------------------------------------

class TestPreferenceGate:
    def test_disabled_category_suppresses_silently(self, app, services, user):
        """categories.maintenance.in_app = False -> None and no row persisted."""
        services.notification_service.update_notification_settings(
            user.id, {'categories': {'maintenance': {'in_app': False}}}
        )
        before = services.notification_service.get_user_notifications(user.id)['total']

        result = _notify(services, user, category='maintenance', channel='IN_APP')

        assert result is None
        assert Notification.query.filter_by(user_id=user.id).count() == 0
        assert services.notification_service.get_user_notifications(user.id)['total'] == before

    def test_disabled_channel_suppresses_every_category(self, app, services, user):
        services.notification_service.update_notification_settings(
            user.id, {'channels': {'in_app': False}}
        )
        assert _notify(services, user, category='reminders') is None
        assert _notify(services, user, category='expenses') is None
        assert Notification.query.count() == 0

    def test_other_categories_still_delivered(self, app, services, user):
        services.notification_service.update_notification_settings(
            user.id, {'categories': {'maintenance': {'in_app': False}}}
        )
        notification = _notify(services, user, category='reminders')
        assert notification is not None
        assert notification.read is False
        assert notification.category == 'reminders'

    def test_category_defaults_to_system(self, app, services, user):
        notification = _notify(services, user)
        assert notification.category == 'system'
        assert notification.channel == 'IN_APP'

    def test_system_email_is_off_by_default(self, app, services, user):
        assert _notify(services, user, channel='EMAIL') is None

    def test_missing_category_key_counts_as_enabled(self, app, services, user):
        notification = _notify(services, user, category='brand_new_category')
        assert notification is not None


# ---------------------------------------------------------------------------
# Email delivery
# ---------------------------------------------------------------------------

class TestEmailDelivery:
    def test_email_channel_sends_mail(self, app, services, user, monkeypatch):
        sent = []
        monkeypatch.setattr(services.email_service, 'send_notification_email',
                            lambda to, title, message: sent.append((to, title)) or True)

        notification = _notify(services, user, channel='EMAIL', category='reminders', title='Due soon')

        assert notification is not None
        assert sent == [('owner@example.com', 'Due soon')]

    def test_email_failure_keeps_notification(self, app, services, user, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError('smtp down')
        monkeypatch.setattr(services.email_service, 'send_notification_email', boom)

        notification = _notify(services, user, channel='EMAIL', category='reminders')

        assert notification is not None
        assert db.session.get(Notification, notification.id) is not None

    def test_in_app_does_not_send_mail(self, app, services, user, monkeypatch):
        sent = []
        monkeypatch.setattr(services.email_service, 'send_notification_email',
                            lambda *args: sent.append(args) or True)
        _notify(services, user, category='reminders')
        assert sent == []

    def test_created_signal_fires(self, app, services, user):
        from services.signals import notification_created
        received = []

        def receiver(sender, notification=None, **extra):
            received.append(notification.id)

        notification_created.connect(receiver)
        try:
            notification = _notify(services, user)
        finally:
            notification_created.disconnect(receiver)

        assert received == [notification.id]


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

class TestSettings:
    def test_get_settings_is_idempotent(self, app, services, user):
        first = services.notification_service.get_notification_settings(user.id)
        first_dict = first.to_dict()
        second = services.notification_service.get_notification_settings(user.id)

        assert UserSettings.query.filter_by(user_id=user.id).count() == 1
        assert first.id == second.id
        assert second.to_dict()['channels'] == first_dict['channels'] == DEFAULT_CHANNELS
        assert second.to_dict()['categories'] == DEFAULT_CATEGORIES

    def test_partial_update_keeps_omitted_values(self, app, services, user):
        services.notification_service.update_notification_settings(
            user.id, {'advanced_settings': {'monthly_expense_limit': 500}}
        )
        settings = services.notification_service.update_notification_settings(
            user.id, {'categories': {'system': {'email': True}}}
        )

        assert settings.categories['system'] == {'in_app': True, 'email': True}
        assert settings.categories['maintenance'] == {'in_app': True, 'email': True}
        assert settings.advanced_settings['monthly_expense_limit'] == 500
        assert settings.advanced_settings['mileage_alert_threshold'] == 1000
        assert settings.channels == DEFAULT_CHANNELS

    def test_defaults_are_not_shared_between_users(self, app, services, user, other_user):
        services.notification_service.update_notification_settings(
            user.id, {'channels': {'email': False}}
        )
        other = services.notification_service.get_notification_settings(other_user.id)
        assert other.channels['email'] is True


# ---------------------------------------------------------------------------
# Listing and mutations
# ---------------------------------------------------------------------------

class TestListing:
    def test_newest_first_with_pagination(self, app, services, user):
        base = datetime(2024, 1, 1)
        for i in range(5):
            n = _notify(services, user, title=f'n{i}')
            n.created_at = base + timedelta(hours=i)
        db.session.commit()

        page1 = services.notification_service.get_user_notifications(user.id, page=1, limit=2)
        page3 = services.notification_service.get_user_notifications(user.id, page=3, limit=2)

        assert [n.title for n in page1['notifications']] == ['n4', 'n3']
        assert [n.title for n in page3['notifications']] == ['n0']
        assert page1['total'] == 5
        assert page1['total_pages'] == 3
        assert page1['unread_count'] == 5

    def test_non_positive_paging_is_clamped(self, app, services, user):
        _notify(services, user)
        result = services.notification_service.get_user_notifications(user.id, page=0, limit=-5)
        assert result['page'] == 1
        assert result['limit'] == 1
        assert len(result['notifications']) == 1

    def test_filters(self, app, services, user):
        _notify(services, user, category='reminders')
        read_one = _notify(services, user, category='maintenance')
        services.notification_service.mark_as_read(read_one.id, user.id)

        unread = services.notification_service.get_user_notifications(user.id, unread_only=True)
        maintenance = services.notification_service.get_user_notifications(user.id, category='maintenance')

        assert [n.category for n in unread['notifications']] == ['reminders']
        assert [n.id for n in maintenance['notifications']] == [read_one.id]


class TestScopedMutations:
    def test_mark_as_read(self, app, services, user):
        n = _notify(services, user)
        assert services.notification_service.mark_as_read(n.id, user.id) == 1
        db.session.refresh(n)
        assert n.read is True
        assert services.notification_service.get_unread_count(user.id) == 0

    def test_other_user_cannot_mark_or_delete(self, app, services, user, other_user):
        n = _notify(services, user)

        assert services.notification_service.mark_as_read(n.id, other_user.id) == 0
        assert services.notification_service.delete_notification(n.id, other_user.id) == 0

        db.session.refresh(n)
        assert n.read is False
        assert db.session.get(Notification, n.id) is not None

    def test_mark_all_only_touches_own_rows(self, app, services, user, other_user):
        _notify(services, user)
        _notify(services, user)
        _notify(services, other_user)

        assert services.notification_service.mark_all_as_read(user.id) == 2
        assert services.notification_service.get_unread_count(other_user.id) == 1

    def test_delete(self, app, services, user):
        n = _notify(services, user)
        assert services.notification_service.delete_notification(n.id, user.id) == 1
        assert Notification.query.count() == 0


@pytest.mark.parametrize('enabled', [True, False])
def test_send_test_email_reports_result(app, services, user, monkeypatch, enabled):
    monkeypatch.setattr(services.email_service, 'send_test_email', lambda to, name=None: enabled)
    assert services.notification_service.send_test_email(user.id) is enabled
