"""
Mileage Reminder Evaluator
==========================
The one place that decides which mileage reminders an odometer reading
triggers, shared by both mileage-update paths.

Two trigger policies exist because the two paths have always behaved
differently and the product has not chosen between them:

  REPORT_ONLY          log each due reminder, write nothing
                       (ReminderService.update_vehicle_mileage_and_check_reminders)
  NOTIFY_AND_COMPLETE  MILEAGE_ALERT notification, set last_notified and mark
                       the reminder completed, ignoring ``recurring``
                       (MileageNotificationService.check_mileage_based_reminders)
"""
import enum

from flask import current_app

from extensions import db
from models.mileage_records import MileageRecord
from models.reminders import Reminder
from models.vehicles import Vehicle
from models.enums import (
    MILEAGE_REMINDER_TYPES, NotificationCategory, NotificationChannel, NotificationType,
)
from services.exceptions import NotFoundError, ValidationError
from utils.dates import utcnow


class TriggerPolicy(str, enum.Enum):
    REPORT_ONLY = 'report_only'
    NOTIFY_AND_COMPLETE = 'notify_and_complete'


class MileageReminderEvaluator:

    def __init__(self, notification_service):
        self.notification_service = notification_service

    def record_mileage(self, vehicle_id, mileage, notes=None):
        """Set the vehicle's odometer and append a MileageRecord."""
        vehicle = db.session.get(Vehicle, vehicle_id)
        if vehicle is None:
            raise NotFoundError('Vehicle', vehicle_id)
        if mileage is None or int(mileage) < 0:
            raise ValidationError('Mileage must be a non-negative number',
                                  errors={'mileage': ['Must be >= 0']})

        mileage = int(mileage)
        vehicle.mileage = mileage
        db.session.add(MileageRecord(
            vehicle_id=vehicle.id,
            mileage=mileage,
            date=utcnow(),
            notes=notes,
        ))
        db.session.commit()
        return vehicle

    def find_due(self, vehicle_id, mileage):
        """Open MILEAGE_BASED/HYBRID reminders whose due mileage has been reached."""
        return Reminder.query.filter(
            Reminder.vehicle_id == vehicle_id,
            Reminder.completed.is_(False),
            Reminder.type.in_([t.value for t in MILEAGE_REMINDER_TYPES]),
            Reminder.due_mileage.isnot(None),
            Reminder.due_mileage <= mileage,
        ).order_by(Reminder.due_mileage.asc(), Reminder.id.asc()).all()

    def evaluate(self, vehicle_id, mileage, policy):
        """Apply *policy* to every due reminder and return the triggered ones."""
        policy = TriggerPolicy(policy)
        due = self.find_due(vehicle_id, mileage)

        if policy == TriggerPolicy.REPORT_ONLY:
            for reminder in due:
                current_app.logger.info(
                    f"Mileage reminder {reminder.id} due for vehicle {vehicle_id}: "
                    f"'{reminder.description}' at {reminder.due_mileage} km (current {mileage} km)"
                )
            return due

        triggered = []
        for reminder in due:
            if self.notify_and_complete(reminder, mileage):
                triggered.append(reminder)
        return triggered

    def notify_and_complete(self, reminder, mileage):
        """
        Send the MILEAGE_ALERT and close the reminder.

        Failures are logged and swallowed per reminder.  Returns True when
        the reminder was closed.
        """
        try:
            vehicle = reminder.vehicle
            self.notification_service.create_notification(
                user_id=vehicle.owner_id,
                type=NotificationType.MILEAGE_ALERT,
                title='Mileage maintenance due',
                message=f'{vehicle.display_name} has reached {mileage:,} km. {reminder.description}',
                channel=NotificationChannel.IN_APP,
                category=NotificationCategory.MAINTENANCE,
                data={
                    'vehicle_id': vehicle.id,
                    'reminder_id': reminder.id,
                    'current_mileage': mileage,
                    'due_mileage': reminder.due_mileage,
                    'description': reminder.description,
                },
            )
            reminder.last_notified = utcnow()
            reminder.completed = True
            db.session.commit()
            current_app.logger.info(f"Mileage reminder {reminder.id} triggered and completed")
            return True
        except Exception:
            db.session.rollback()
            current_app.logger.exception(f"Error triggering mileage reminder {reminder.id}")
            return False
