"""
Tests for the database bootstrap helpers.
"""
from init_db import ensure_default_settings, table_row_counts
from models.settings import UserSettings, DEFAULT_CHANNELS


def test_backfills_missing_settings_once(app, user, other_user, services):
    services.notification_service.get_notification_settings(other_user.id)

    assert ensure_default_settings() == 1
    assert UserSettings.query.filter_by(user_id=user.id).one().channels == DEFAULT_CHANNELS
    assert ensure_default_settings() == 0
    assert UserSettings.query.count() == 2


def test_row_counts_cover_every_table(app, user, vehicle):
    counts = table_row_counts()

    assert counts['users'] == 1
    assert counts['vehicles'] == 1
    assert counts['push_subscriptions'] == 0
