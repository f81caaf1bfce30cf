"""
Reminder Service
================
Owns the Reminder lifecycle: creation, completion, recurrence and smart
templates.

Recurrence
----------
Completing a recurring reminder inserts a *new* row; the completed row stays
completed.  The next occurrence is computed from the completion moment, not
from the old due date, so a late completion pushes the schedule back:

    TIME_BASED / HYBRID     due_date    = now + interval_days
    MILEAGE_BASED / HYBRID  due_mileage = vehicle.mileage + interval_mileage

Notifications sent from here are best-effort: a failure is logged and the
reminder operation still succeeds.
"""
from datetime import timedelta

from flask import current_app
from sqlalchemy import and_, or_

from extensions import db
from models.reminders import Reminder
from models.vehicles import Vehicle
from models.enums import (
    DATE_REMINDER_TYPES, MILEAGE_REMINDER_TYPES, NotificationCategory, NotificationChannel,
    NotificationType, ReminderType,
)
from services.exceptions import NotFoundError, UnknownReminderTypeError, ValidationError
from services.mileage_evaluator import TriggerPolicy
from utils.dates import utcnow


UPDATABLE_FIELDS = (
    'description', 'type', 'due_date', 'due_mileage', 'interval_days',
    'interval_mileage', 'recurring', 'completed',
)


def _oil_change(vehicle, now):
    return {
        'description': 'Oil change',
        'type': ReminderType.HYBRID,
        'due_date': now + timedelta(days=180),
        'due_mileage': vehicle.mileage + 10000,
        'interval_days': 180,
        'interval_mileage': 10000,
        'recurring': True,
    }


def _tire_rotation(vehicle, now):
    return {
        'description': 'Tire rotation',
        'type': ReminderType.MILEAGE_BASED,
        'due_mileage': vehicle.mileage + 10000,
        'interval_mileage': 10000,
        'recurring': True,
    }


def _brake_check(vehicle, now):
    # Older vehicles get their brakes looked at more often
    interval_km = 15000 if vehicle.age_in_years(now) > 5 else 20000
    return {
        'description': 'Brake system check',
        'type': ReminderType.HYBRID,
        'due_date': now + timedelta(days=365),
        'due_mileage': vehicle.mileage + interval_km,
        'interval_days': 365,
        'interval_mileage': interval_km,
        'recurring': True,
    }


def _general_maintenance(vehicle, now):
    interval_days = 180 if vehicle.age_in_years(now) > 10 else 365
    return {
        'description': 'General maintenance review',
        'type': ReminderType.TIME_BASED,
        'due_date': now + timedelta(days=interval_days),
        'interval_days': interval_days,
        'recurring': True,
    }


SMART_REMINDER_TEMPLATES = {
    'oil_change': _oil_change,
    'tire_rotation': _tire_rotation,
    'brake_check': _brake_check,
    'general_maintenance': _general_maintenance,
}


class ReminderService:

    def __init__(self, notification_service, mileage_evaluator):
        self.notification_service = notification_service
        self.mileage_evaluator = mileage_evaluator

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def create(self, data):
        """Persist a reminder, then tell the owner about it (best-effort)."""
        vehicle = db.session.get(Vehicle, data.get('vehicle_id'))
        if vehicle is None:
            raise NotFoundError('Vehicle', data.get('vehicle_id'))

        reminder_type = ReminderType(data.get('type') or ReminderType.TIME_BASED)
        reminder = Reminder(
            vehicle_id=vehicle.id,
            description=data['description'],
            type=reminder_type.value,
            due_date=data.get('due_date'),
            due_mileage=data.get('due_mileage'),
            interval_days=data.get('interval_days'),
            interval_mileage=data.get('interval_mileage'),
            recurring=bool(data.get('recurring', False)),
            completed=False,
        )
        self._validate_schedule(reminder)

        db.session.add(reminder)
        db.session.commit()
        current_app.logger.info(f"Reminder {reminder.id} created for vehicle {vehicle.id}")

        self._notify_created(reminder, vehicle)
        return reminder

    def find_all(self, vehicle_id=None, vehicle_ids=None, completed=None, type=None):
        query = Reminder.query
        if vehicle_id is not None:
            query = query.filter(Reminder.vehicle_id == vehicle_id)
        if vehicle_ids is not None:
            query = query.filter(Reminder.vehicle_id.in_(vehicle_ids))
        if completed is not None:
            query = query.filter(Reminder.completed.is_(bool(completed)))
        if type:
            query = query.filter(Reminder.type == ReminderType(type).value)
        return query.order_by(Reminder.due_date.is_(None), Reminder.due_date.asc(),
                              Reminder.due_mileage.asc(), Reminder.id.asc()).all()

    def find_by_id(self, reminder_id):
        return db.session.get(Reminder, reminder_id)

    def find_by_vehicle(self, vehicle_id):
        return self.find_all(vehicle_id=vehicle_id)

    def update(self, reminder_id, data):
        reminder = self.find_by_id(reminder_id)
        if reminder is None:
            raise NotFoundError('Reminder', reminder_id)

        for field in UPDATABLE_FIELDS:
            if field in data:
                value = data[field]
                if field == 'type' and value is not None:
                    value = ReminderType(value).value
                setattr(reminder, field, value)
        self._validate_schedule(reminder)

        db.session.commit()
        return reminder

    def delete(self, reminder_id):
        reminder = self.find_by_id(reminder_id)
        if reminder is None:
            raise NotFoundError('Reminder', reminder_id)
        db.session.delete(reminder)
        db.session.commit()
        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def mark_as_completed(self, reminder_id):
        """
        Complete a reminder.  A recurring one spawns its next occurrence as a
        new row, scheduled from now.  Completing an already completed
        reminder is a no-op.
        """
        reminder = self.find_by_id(reminder_id)
        if reminder is None:
            raise NotFoundError('Reminder', reminder_id)
        if reminder.completed:
            return reminder

        reminder.completed = True
        db.session.commit()

        self._notify(
            reminder.vehicle,
            NotificationType.REMINDER_COMPLETED,
            'Reminder completed',
            f"Reminder '{reminder.description}' for {reminder.vehicle.display_name} was completed.",
            {'reminder_id': reminder.id, 'vehicle_id': reminder.vehicle_id},
        )

        if reminder.recurring:
            self._create_next_occurrence(reminder)

        return reminder

    def _create_next_occurrence(self, reminder):
        now = utcnow()
        vehicle = reminder.vehicle
        reminder_type = ReminderType(reminder.type)

        next_reminder = Reminder(
            vehicle_id=reminder.vehicle_id,
            description=reminder.description,
            type=reminder_type.value,
            interval_days=reminder.interval_days,
            interval_mileage=reminder.interval_mileage,
            recurring=True,
            completed=False,
        )
        if reminder_type in DATE_REMINDER_TYPES and reminder.interval_days:
            next_reminder.due_date = now + timedelta(days=reminder.interval_days)
        if reminder_type in MILEAGE_REMINDER_TYPES and reminder.interval_mileage:
            next_reminder.due_mileage = vehicle.mileage + reminder.interval_mileage

        db.session.add(next_reminder)
        db.session.commit()
        current_app.logger.info(
            f"Recurring reminder {reminder.id} rescheduled as {next_reminder.id}"
        )
        return next_reminder

    def create_smart_reminder(self, vehicle_id, reminder_type):
        """Instantiate one of the built-in maintenance templates for a vehicle."""
        template = SMART_REMINDER_TEMPLATES.get(reminder_type)
        if template is None:
            raise UnknownReminderTypeError(reminder_type, known_types=sorted(SMART_REMINDER_TEMPLATES))

        vehicle = db.session.get(Vehicle, vehicle_id)
        if vehicle is None:
            raise NotFoundError('Vehicle', vehicle_id)

        data = template(vehicle, utcnow())
        data['vehicle_id'] = vehicle.id
        return self.create(data)

    def create_recurring_reminder(self, data):
        data = dict(data)
        data['recurring'] = True
        return self.create(data)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_upcoming_reminders(self, vehicle_id=None, vehicle_ids=None, days=30):
        """
        Open reminders that are coming up.

        Date reminders count when due within the next *days* days.  Every open
        mileage reminder with a positive due mileage counts regardless of how
        far away it is.
        """
        now = utcnow()
        until = now + timedelta(days=days)

        query = Reminder.query.filter(
            Reminder.completed.is_(False),
            or_(
                and_(
                    Reminder.type.in_([t.value for t in DATE_REMINDER_TYPES]),
                    Reminder.due_date >= now,
                    Reminder.due_date <= until,
                ),
                and_(
                    Reminder.type.in_([t.value for t in MILEAGE_REMINDER_TYPES]),
                    Reminder.due_mileage > 0,
                ),
            ),
        )
        if vehicle_id is not None:
            query = query.filter(Reminder.vehicle_id == vehicle_id)
        if vehicle_ids is not None:
            query = query.filter(Reminder.vehicle_id.in_(vehicle_ids))

        return query.order_by(Reminder.due_date.is_(None), Reminder.due_date.asc(),
                              Reminder.due_mileage.asc()).all()

    def get_mileage_based_reminders(self, vehicle_id=None, vehicle_ids=None):
        query = Reminder.query.filter(
            Reminder.completed.is_(False),
            Reminder.type.in_([t.value for t in MILEAGE_REMINDER_TYPES]),
        )
        if vehicle_id is not None:
            query = query.filter(Reminder.vehicle_id == vehicle_id)
        if vehicle_ids is not None:
            query = query.filter(Reminder.vehicle_id.in_(vehicle_ids))
        return query.order_by(Reminder.due_mileage.asc()).all()

    def update_vehicle_mileage_and_check_reminders(self, vehicle_id, mileage, notes=None):
        """
        Record a new odometer reading and report which mileage reminders it
        reaches.  Nothing is sent or completed on this path.
        """
        vehicle = self.mileage_evaluator.record_mileage(vehicle_id, mileage, notes=notes)
        triggered = self.mileage_evaluator.evaluate(vehicle.id, vehicle.mileage,
                                                    TriggerPolicy.REPORT_ONLY)
        return {
            'mileage_updated': True,
            'new_mileage': vehicle.mileage,
            'triggered_reminders': len(triggered),
            'reminders': triggered,
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_schedule(reminder):
        reminder_type = ReminderType(reminder.type)
        errors = {}
        if reminder_type == ReminderType.TIME_BASED and reminder.due_date is None:
            errors['due_date'] = ['Required for time-based reminders']
        if reminder_type == ReminderType.MILEAGE_BASED and reminder.due_mileage is None:
            errors['due_mileage'] = ['Required for mileage-based reminders']
        if reminder_type == ReminderType.HYBRID and reminder.due_date is None and reminder.due_mileage is None:
            errors['due_date'] = ['Hybrid reminders need a due date or a due mileage']
        if reminder.recurring:
            if reminder_type == ReminderType.TIME_BASED and not reminder.interval_days:
                errors['interval_days'] = ['Required for recurring time-based reminders']
            if reminder_type == ReminderType.MILEAGE_BASED and not reminder.interval_mileage:
                errors['interval_mileage'] = ['Required for recurring mileage-based reminders']
            if reminder_type == ReminderType.HYBRID and not (reminder.interval_days or reminder.interval_mileage):
                errors['interval_days'] = ['Recurring hybrid reminders need at least one interval']
        if errors:
            raise ValidationError('Invalid reminder schedule', errors=errors)

    def _notify_created(self, reminder, vehicle):
        parts = [f"New reminder '{reminder.description}' for {vehicle.display_name}"]
        if reminder.due_date:
            parts.append(f"due on {reminder.due_date:%d/%m/%Y}")
        if reminder.due_mileage:
            parts.append(f"at {reminder.due_mileage:,} km")
        self._notify(
            vehicle,
            NotificationType.REMINDER_CREATED,
            'Reminder created',
            ' '.join(parts) + '.',
            {'reminder_id': reminder.id, 'vehicle_id': vehicle.id},
        )

    def _notify(self, vehicle, notification_type, title, message, data):
        try:
            self.notification_service.create_notification(
                user_id=vehicle.owner_id,
                type=notification_type,
                title=title,
                message=message,
                data=data,
                channel=NotificationChannel.IN_APP,
                category=NotificationCategory.REMINDERS,
            )
        except Exception:
            db.session.rollback()
            current_app.logger.exception(f"Failed to send {notification_type.value} notification")
