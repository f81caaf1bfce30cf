"""
Tests for ReminderService: creation, completion and recurrence, smart
templates, upcoming reminders and the report-only mileage path.
"""
from datetime import datetime, timedelta

import pytest

from extensions import db
from models.mileage_records import MileageRecord
from models.notifications import Notification
from models.reminders import Reminder
from services.exceptions import NotFoundError, UnknownReminderTypeError, ValidationError


NOW = datetime(2024, 6, 1, 12, 0)


# ---------------------------------------------------------------------------
# Create / validate
# ---------------------------------------------------------------------------

class TestCreate:
    def test_create_notifies_owner(self, app, services, user, vehicle):
        reminder = services.reminder_service.create({
            'vehicle_id': vehicle.id,
            'description': 'Oil change',
            'type': 'HYBRID',
            'due_date': datetime(2024, 7, 1),
            'due_mileage': 60000,
        })

        assert reminder.id is not None
        assert reminder.completed is False
        notification = Notification.query.filter_by(user_id=user.id).one()
        assert notification.type == 'REMINDER_CREATED'
        assert notification.category == 'reminders'
        assert '01/07/2024' in notification.message
        assert '60,000 km' in notification.message

    def test_notification_failure_does_not_undo_reminder(self, app, services, vehicle, monkeypatch):
        def boom(**kwargs):
            raise RuntimeError('notification store down')
        monkeypatch.setattr(services.notification_service, 'create_notification', boom)

        reminder = services.reminder_service.create({
            'vehicle_id': vehicle.id, 'description': 'Wipers', 'due_date': NOW,
        })

        assert db.session.get(Reminder, reminder.id) is not None

    def test_time_based_requires_due_date(self, app, services, vehicle):
        with pytest.raises(ValidationError):
            services.reminder_service.create({
                'vehicle_id': vehicle.id, 'description': 'Wipers', 'type': 'TIME_BASED',
            })

    def test_recurring_requires_interval(self, app, services, vehicle):
        with pytest.raises(ValidationError) as exc:
            services.reminder_service.create_recurring_reminder({
                'vehicle_id': vehicle.id, 'description': 'Tyres', 'type': 'MILEAGE_BASED',
                'due_mileage': 60000,
            })
        assert 'interval_mileage' in exc.value.details

    def test_unknown_vehicle(self, app, services):
        with pytest.raises(NotFoundError):
            services.reminder_service.create({'vehicle_id': 999, 'description': 'x', 'due_date': NOW})


# ---------------------------------------------------------------------------
# Completion and recurrence
# ---------------------------------------------------------------------------

class TestCompletion:
    def test_missing_reminder(self, app, services):
        with pytest.raises(NotFoundError):
            services.reminder_service.mark_as_completed(12345)

    def test_non_recurring_has_no_successor(self, app, services, user, vehicle, make_reminder):
        reminder = make_reminder(vehicle, due_date=NOW)

        services.reminder_service.mark_as_completed(reminder.id)

        assert Reminder.query.count() == 1
        assert reminder.completed is True
        assert Notification.query.filter_by(type='REMINDER_COMPLETED').count() == 1

    def test_recurrence_is_scheduled_from_completion_time(self, app, services, vehicle,
                                                          make_reminder, frozen_now):
        """Completed late: next due = completion + 90 days, not old due + 90 days."""
        original_due = datetime(2024, 1, 1, 8, 0)
        reminder = make_reminder(vehicle, due_date=original_due, interval_days=90, recurring=True)
        completed_at = frozen_now(datetime(2024, 3, 15, 10, 30))

        services.reminder_service.mark_as_completed(reminder.id)

        successor = Reminder.query.filter(Reminder.id != reminder.id).one()
        assert successor.due_date == completed_at + timedelta(days=90)
        assert successor.due_date != original_due + timedelta(days=90)
        assert successor.completed is False
        assert successor.recurring is True
        assert db.session.get(Reminder, reminder.id).completed is True

    def test_completing_twice_spawns_one_successor(self, app, services, vehicle, make_reminder):
        reminder = make_reminder(vehicle, due_date=NOW, interval_days=90, recurring=True)

        services.reminder_service.mark_as_completed(reminder.id)
        services.reminder_service.mark_as_completed(reminder.id)

        successors = Reminder.query.filter(Reminder.id != reminder.id).all()
        assert len(successors) == 1
        assert Notification.query.filter_by(type='REMINDER_COMPLETED').count() == 1

    def test_terminal_mileage_completion_is_not_revived(self, app, services, vehicle, make_reminder):
        reminder = make_reminder(vehicle, type='MILEAGE_BASED', due_mileage=50000,
                                 interval_mileage=10000, recurring=True)
        services.mileage_notification_service.check_mileage_based_reminders(vehicle.id, 50000)

        services.reminder_service.mark_as_completed(reminder.id)

        assert Reminder.query.count() == 1

    def test_mileage_recurrence_uses_current_odometer(self, app, services, vehicle, make_reminder):
        reminder = make_reminder(vehicle, type='MILEAGE_BASED', due_mileage=52000,
                                 interval_mileage=10000, recurring=True)
        vehicle.mileage = 53500
        db.session.commit()

        services.reminder_service.mark_as_completed(reminder.id)

        successor = Reminder.query.filter(Reminder.id != reminder.id).one()
        assert successor.due_mileage == 63500
        assert successor.due_date is None


# ---------------------------------------------------------------------------
# Smart reminders
# ---------------------------------------------------------------------------

class TestSmartReminders:
    def test_oil_change(self, app, services, vehicle, frozen_now):
        frozen_now(NOW)
        reminder = services.reminder_service.create_smart_reminder(vehicle.id, 'oil_change')

        assert reminder.type == 'HYBRID'
        assert reminder.due_mileage == vehicle.mileage + 10000
        assert reminder.due_date == NOW + timedelta(days=180)
        assert reminder.recurring is True

    @pytest.mark.parametrize('year, interval_km', [(2015, 15000), (2020, 20000)])
    def test_brake_check_interval_depends_on_age(self, app, services, user, make_vehicle,
                                                 frozen_now, year, interval_km):
        frozen_now(NOW)
        vehicle = make_vehicle(user, year=year, mileage=40000)

        reminder = services.reminder_service.create_smart_reminder(vehicle.id, 'brake_check')

        assert reminder.interval_mileage == interval_km
        assert reminder.due_mileage == 40000 + interval_km

    def test_general_maintenance_for_old_vehicle(self, app, services, user, make_vehicle, frozen_now):
        frozen_now(NOW)
        vehicle = make_vehicle(user, year=2010)

        reminder = services.reminder_service.create_smart_reminder(vehicle.id, 'general_maintenance')

        assert reminder.type == 'TIME_BASED'
        assert reminder.interval_days == 180

    def test_unknown_template(self, app, services, vehicle):
        with pytest.raises(UnknownReminderTypeError) as exc:
            services.reminder_service.create_smart_reminder(vehicle.id, 'windscreen_polish')
        assert 'windscreen_polish' in exc.value.message
        assert Reminder.query.count() == 0


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

class TestUpcoming:
    def test_window_applies_to_dates_only(self, app, services, vehicle, make_reminder, frozen_now):
        frozen_now(NOW)
        soon = make_reminder(vehicle, description='soon', due_date=NOW + timedelta(days=5))
        make_reminder(vehicle, description='later', due_date=NOW + timedelta(days=90))
        far_km = make_reminder(vehicle, description='far km', type='MILEAGE_BASED', due_mileage=250000)
        make_reminder(vehicle, description='done', due_date=NOW + timedelta(days=1), completed=True)

        upcoming = services.reminder_service.get_upcoming_reminders(vehicle_id=vehicle.id, days=30)

        assert {r.id for r in upcoming} == {soon.id, far_km.id}

    def test_scoped_to_vehicle_ids(self, app, services, user, other_user, make_vehicle,
                                   make_reminder, frozen_now):
        frozen_now(NOW)
        mine = make_vehicle(user)
        theirs = make_vehicle(other_user, license_plate='XYZ9876')
        make_reminder(mine, due_date=NOW + timedelta(days=1))
        make_reminder(theirs, due_date=NOW + timedelta(days=1))

        upcoming = services.reminder_service.get_upcoming_reminders(vehicle_ids=[mine.id])

        assert [r.vehicle_id for r in upcoming] == [mine.id]

    def test_mileage_based_reminders(self, app, services, vehicle, make_reminder):
        hybrid = make_reminder(vehicle, type='HYBRID', due_mileage=70000, due_date=NOW)
        km = make_reminder(vehicle, type='MILEAGE_BASED', due_mileage=60000)
        make_reminder(vehicle, type='TIME_BASED', due_date=NOW)

        reminders = services.reminder_service.get_mileage_based_reminders(vehicle_id=vehicle.id)

        assert [r.id for r in reminders] == [km.id, hybrid.id]


class TestReportOnlyMileagePath:
    def test_reports_without_notifying_or_completing(self, app, services, vehicle, make_reminder):
        due = make_reminder(vehicle, type='MILEAGE_BASED', due_mileage=55000)
        make_reminder(vehicle, type='MILEAGE_BASED', due_mileage=80000)

        result = services.reminder_service.update_vehicle_mileage_and_check_reminders(
            vehicle.id, 56000, notes='Trip'
        )

        assert result['mileage_updated'] is True
        assert result['new_mileage'] == 56000
        assert result['triggered_reminders'] == 1
        assert [r.id for r in result['reminders']] == [due.id]
        assert db.session.get(Reminder, due.id).completed is False
        assert Notification.query.filter_by(type='MILEAGE_ALERT').count() == 0
        assert MileageRecord.query.filter_by(vehicle_id=vehicle.id, mileage=56000).count() == 1
        assert vehicle.mileage == 56000

    def test_negative_mileage_rejected(self, app, services, vehicle):
        with pytest.raises(ValidationError):
            services.reminder_service.update_vehicle_mileage_and_check_reminders(vehicle.id, -1)
