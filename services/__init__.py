"""
Service wiring.

Every service is constructed once per app by ``build_services`` and handed its
collaborators explicitly.  Routes and CLI commands fetch the container with
``get_services()``.
"""
from flask import current_app

from services.cron_service import CronService
from services.email_service import EmailService
from services.expense_service import ExpenseService
from services.maintenance_service import MaintenanceService
from services.mileage_evaluator import MileageReminderEvaluator
from services.mileage_notification_service import MileageNotificationService
from services.notification_service import NotificationService
from services.prediction_service import PredictionService
from services.push_service import PushService
from services.reminder_service import ReminderService
from services.vehicle_service import VehicleService


class ServiceContainer:

    def __init__(self, app):
        self.email_service = EmailService(app.config)
        self.push_service = PushService(app.config)
        self.notification_service = NotificationService(self.email_service)
        self.mileage_evaluator = MileageReminderEvaluator(self.notification_service)
        self.reminder_service = ReminderService(self.notification_service, self.mileage_evaluator)
        self.mileage_notification_service = MileageNotificationService(
            self.notification_service, self.mileage_evaluator
        )
        self.expense_service = ExpenseService()
        self.vehicle_service = VehicleService()
        self.maintenance_service = MaintenanceService(
            self.notification_service, self.reminder_service, self.expense_service
        )
        self.prediction_service = PredictionService
        self.cron_service = CronService(app, self)


def build_services(app):
    container = ServiceContainer(app)
    app.extensions['services'] = container
    return container


def get_services():
    return current_app.extensions['services']
