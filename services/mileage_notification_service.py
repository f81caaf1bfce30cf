"""
Mileage Notification Service
============================
Odometer-driven reminder triggering for the vehicle mileage endpoint.

Unlike ReminderService.update_vehicle_mileage_and_check_reminders, this path
notifies the owner and closes each reached reminder for good.  A recurring
reminder triggered here does NOT get a successor; recurrence is only honoured
by ReminderService.mark_as_completed.
"""
import math

from flask import current_app

from extensions import db
from models.reminders import Reminder
from models.vehicles import Vehicle
from models.enums import MILEAGE_REMINDER_TYPES, ReminderType
from services.exceptions import NotFoundError, ValidationError
from services.mileage_evaluator import TriggerPolicy


class MileageNotificationService:

    def __init__(self, notification_service, mileage_evaluator):
        self.notification_service = notification_service
        self.mileage_evaluator = mileage_evaluator

    def update_vehicle_mileage(self, vehicle_id, new_mileage, notes='Manual mileage update'):
        vehicle = self.mileage_evaluator.record_mileage(vehicle_id, new_mileage, notes=notes)
        triggered = self.check_mileage_based_reminders(vehicle.id, vehicle.mileage)
        current_app.logger.info(
            f"Vehicle {vehicle.id} mileage set to {vehicle.mileage} km, "
            f"{len(triggered)} reminders triggered"
        )
        return {'triggered_reminders': triggered}

    def check_mileage_based_reminders(self, vehicle_id, current_mileage):
        """Notify and complete every reached reminder.  Returns [] on error."""
        try:
            return self.mileage_evaluator.evaluate(vehicle_id, current_mileage,
                                                   TriggerPolicy.NOTIFY_AND_COMPLETE)
        except Exception:
            db.session.rollback()
            current_app.logger.exception(f"Error checking mileage reminders for vehicle {vehicle_id}")
            return []

    def trigger_mileage_reminder(self, reminder, current_mileage):
        return self.mileage_evaluator.notify_and_complete(reminder, current_mileage)

    def create_mileage_reminder(self, vehicle_id, description, due_mileage,
                                interval_mileage=None, recurring=False):
        vehicle = db.session.get(Vehicle, vehicle_id)
        if vehicle is None:
            raise NotFoundError('Vehicle', vehicle_id)
        if recurring and not interval_mileage:
            raise ValidationError('Invalid reminder schedule',
                                  errors={'interval_mileage': ['Required for recurring mileage-based reminders']})

        reminder = Reminder(
            vehicle_id=vehicle.id,
            description=description,
            type=ReminderType.MILEAGE_BASED.value,
            due_mileage=due_mileage,
            interval_mileage=interval_mileage,
            recurring=recurring,
            completed=False,
        )
        db.session.add(reminder)
        db.session.commit()
        current_app.logger.info(f"Mileage reminder {reminder.id} created for vehicle {vehicle.id}")
        return reminder

    def get_mileage_reminders(self, vehicle_id):
        return Reminder.query.filter(
            Reminder.vehicle_id == vehicle_id,
            Reminder.type.in_([t.value for t in MILEAGE_REMINDER_TYPES]),
        ).order_by(Reminder.due_mileage.asc()).all()

    @staticmethod
    def calculate_next_maintenance_mileage(current_mileage, interval_km):
        """Round *current_mileage* up to the next multiple of *interval_km*.

        An exact multiple stays where it is: (60000, 10000) -> 60000.
        """
        if not interval_km or interval_km <= 0:
            raise ValidationError('Interval must be a positive number of km',
                                  errors={'interval_km': ['Must be > 0']})
        return int(math.ceil(current_mileage / interval_km) * interval_km)
