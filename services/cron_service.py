"""
Cron Service
============
Scheduled background routines, driven by an APScheduler BackgroundScheduler.

Schedules (process-local; run a single instance or notifications duplicate):

  hourly              check_reminders, check_maintenance_due, check_mileage_alerts
  daily 08:00         generate_daily_predictions, check_expense_limits
  Sunday 10:00        clean_old_notifications, generate_weekly_reports

Every routine runs inside an app context, catches its own errors, rolls the
session back and logs, so one failing run never affects the next.  Each
returns a small count so ``flask cron run`` can report what happened.
"""
import json
from collections import OrderedDict
from datetime import timedelta

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from flask import current_app
from sqlalchemy import func

from extensions import db
from models.expenses import Expense
from models.maintenance import Maintenance
from models.notifications import Notification
from models.predictions import Prediction
from models.reminders import Reminder
from models.reports import Report
from models.settings import UserSettings
from models.users import User
from models.vehicles import Vehicle
from models.mileage_records import MileageRecord
from models.enums import (
    DATE_REMINDER_TYPES, MILEAGE_REMINDER_TYPES, NotificationCategory, NotificationChannel,
    NotificationType,
)
from services.prediction_service import PredictionService
from utils.dates import days_between, month_bounds, utcnow


HOURLY = {'minute': 0}
DAILY_8AM = {'hour': 8, 'minute': 0}
WEEKLY_SUNDAY_10AM = {'day_of_week': 'sun', 'hour': 10, 'minute': 0}

JOBS = OrderedDict([
    ('check_reminders', HOURLY),
    ('check_maintenance_due', HOURLY),
    ('check_mileage_alerts', HOURLY),
    ('generate_daily_predictions', DAILY_8AM),
    ('check_expense_limits', DAILY_8AM),
    ('clean_old_notifications', WEEKLY_SUNDAY_10AM),
    ('generate_weekly_reports', WEEKLY_SUNDAY_10AM),
])

# A reminder notified within this window is not notified again
RENOTIFY_AFTER = timedelta(hours=1)
REMINDER_WINDOW = timedelta(hours=24)
URGENT_REMAINING_KM = 100
EXPENSE_PREDICTION_DAYS = 30
MAINTENANCE_PREDICTION_DAYS = 60
PREDICTION_EXPENSES = 30
PREDICTION_MAINTENANCES = 10


def json_safe(payload):
    """Round-trip through JSON so datetimes are stored as strings."""
    return json.loads(json.dumps(payload, default=str))


def prediction_history(vehicle):
    """The (expenses, maintenances) the forecasts are computed from, newest first."""
    expenses = Expense.query.filter_by(vehicle_id=vehicle.id).order_by(
        Expense.date.desc()).limit(PREDICTION_EXPENSES).all()
    maintenances = Maintenance.query.filter_by(vehicle_id=vehicle.id).order_by(
        Maintenance.scheduled_date.desc()).limit(PREDICTION_MAINTENANCES).all()
    return expenses, maintenances


class CronService:

    def __init__(self, app, services):
        self.app = app
        self.services = services
        self.scheduler = None

    # ------------------------------------------------------------------
    # Scheduler control
    # ------------------------------------------------------------------

    @property
    def jobs(self):
        return [
            {'name': name, 'schedule': ' '.join(f'{k}={v}' for k, v in trigger.items())}
            for name, trigger in JOBS.items()
        ]

    def start(self):
        if self.scheduler is not None and self.scheduler.running:
            return self.scheduler

        timezone = self.app.config.get('CRON_TIMEZONE', 'UTC')
        self.scheduler = BackgroundScheduler(timezone=timezone)
        for name, trigger in JOBS.items():
            self.scheduler.add_job(
                self.run_job,
                CronTrigger(timezone=timezone, **trigger),
                args=[name],
                id=name,
                replace_existing=True,
                coalesce=True,
                max_instances=1,
            )
        self.scheduler.start()
        self.app.logger.info(f"Cron scheduler started with {len(JOBS)} jobs ({timezone})")
        return self.scheduler

    def shutdown(self):
        if self.scheduler is not None and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            self.app.logger.info("Cron scheduler stopped")
        self.scheduler = None

    def run_job(self, name):
        """Run one routine now, inside an app context."""
        if name not in JOBS:
            raise KeyError(f"Unknown cron job: {name}")
        with self.app.app_context():
            current_app.logger.info(f"Cron job {name} starting")
            result = getattr(self, name)()
            current_app.logger.info(f"Cron job {name} finished: {result}")
            return result

    # ------------------------------------------------------------------
    # Hourly
    # ------------------------------------------------------------------

    def check_reminders(self, now=None):
        """Due-soon date reminders and approaching mileage reminders."""
        now = now or utcnow()
        counts = {'time_based': 0, 'mileage_based': 0}
        try:
            counts['time_based'] = self._check_time_reminders(now)
            counts['mileage_based'] = self._check_mileage_reminders(now)
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Error checking reminders")
        return counts

    def _check_time_reminders(self, now):
        notify = self.services.notification_service.create_notification
        reminders = Reminder.query.filter(
            Reminder.completed.is_(False),
            Reminder.type.in_([t.value for t in DATE_REMINDER_TYPES]),
            Reminder.due_date.isnot(None),
            Reminder.due_date <= now + REMINDER_WINDOW,
        ).all()

        notified = 0
        for reminder in reminders:
            if reminder.last_notified and reminder.last_notified > now - RENOTIFY_AFTER:
                continue
            vehicle = reminder.vehicle
            payload = {'reminder_id': reminder.id, 'vehicle_id': vehicle.id}
            message = f'{reminder.description} for {vehicle.display_name}'

            notify(user_id=vehicle.owner_id, type=NotificationType.REMINDER_DUE,
                   title='Maintenance reminder', message=message, data=payload,
                   channel=NotificationChannel.IN_APP, category=NotificationCategory.REMINDERS)
            notify(user_id=vehicle.owner_id, type=NotificationType.REMINDER_DUE,
                   title='Maintenance reminder', message=message, data=payload,
                   channel=NotificationChannel.EMAIL, category=NotificationCategory.REMINDERS)

            reminder.last_notified = now
            db.session.commit()
            notified += 1
        return notified

    def _check_mileage_reminders(self, now):
        notify = self.services.notification_service.create_notification
        reminders = Reminder.query.join(Vehicle).filter(
            Reminder.completed.is_(False),
            Reminder.type.in_([t.value for t in MILEAGE_REMINDER_TYPES]),
            Reminder.due_mileage.isnot(None),
        ).all()

        thresholds = {}
        notified = 0
        for reminder in reminders:
            if reminder.last_notified and reminder.last_notified > now - RENOTIFY_AFTER:
                continue
            vehicle = reminder.vehicle
            if vehicle.owner_id not in thresholds:
                thresholds[vehicle.owner_id] = self._mileage_threshold(vehicle.owner_id)

            remaining = reminder.due_mileage - (vehicle.mileage or 0)
            if not 0 < remaining <= thresholds[vehicle.owner_id]:
                continue

            payload = {'reminder_id': reminder.id, 'vehicle_id': vehicle.id, 'remaining_mileage': remaining}
            notify(user_id=vehicle.owner_id, type=NotificationType.MILEAGE_ALERT,
                   title='Mileage alert', message=f'{remaining} km left until: {reminder.description}',
                   data=payload, channel=NotificationChannel.IN_APP,
                   category=NotificationCategory.MAINTENANCE)
            if remaining <= URGENT_REMAINING_KM:
                notify(user_id=vehicle.owner_id, type=NotificationType.MILEAGE_ALERT,
                       title='Mileage alert',
                       message=f'URGENT: only {remaining} km left until: {reminder.description}',
                       data=payload, channel=NotificationChannel.EMAIL,
                       category=NotificationCategory.MAINTENANCE)

            reminder.last_notified = now
            db.session.commit()
            notified += 1
        return notified

    @staticmethod
    def _mileage_threshold(user_id):
        settings = UserSettings.query.filter_by(user_id=user_id).first()
        if settings is None:
            return UserSettings.with_defaults(user_id).get_advanced('mileage_alert_threshold')
        return settings.get_advanced('mileage_alert_threshold')

    def check_maintenance_due(self, now=None):
        """Overdue SCHEDULED maintenances: owner IN_APP + EMAIL, mechanic IN_APP."""
        now = now or utcnow()
        notify = self.services.notification_service.create_notification
        count = 0
        try:
            for maintenance in self.services.maintenance_service.get_overdue_maintenances(now):
                vehicle = maintenance.vehicle
                payload = {'maintenance_id': maintenance.id, 'vehicle_id': vehicle.id}

                notify(user_id=vehicle.owner_id, type=NotificationType.MAINTENANCE_DUE,
                       title='Maintenance overdue',
                       message=f'Maintenance {maintenance.description} is overdue',
                       data=payload, channel=NotificationChannel.IN_APP,
                       category=NotificationCategory.MAINTENANCE)
                notify(user_id=vehicle.owner_id, type=NotificationType.MAINTENANCE_DUE,
                       title='Maintenance overdue',
                       message=(f'Maintenance {maintenance.description} is overdue. '
                                'Please reschedule it as soon as possible.'),
                       data=payload, channel=NotificationChannel.EMAIL,
                       category=NotificationCategory.MAINTENANCE)
                if maintenance.mechanic_id:
                    notify(user_id=maintenance.mechanic_id, type=NotificationType.MAINTENANCE_DUE,
                           title='Scheduled maintenance',
                           message=f'Scheduled maintenance: {maintenance.description}',
                           data=payload, channel=NotificationChannel.IN_APP,
                           category=NotificationCategory.MAINTENANCE)
                count += 1
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Error checking overdue maintenances")
        return count

    def check_mileage_alerts(self, now=None):
        """Flag vehicles whose recent daily usage exceeds MILEAGE_DAILY_ALERT_KM."""
        limit_km = current_app.config.get('MILEAGE_DAILY_ALERT_KM', 200)
        notify = self.services.notification_service.create_notification
        count = 0
        try:
            for vehicle in Vehicle.query.all():
                records = MileageRecord.query.filter_by(vehicle_id=vehicle.id).order_by(
                    MileageRecord.date.desc(), MileageRecord.id.desc()
                ).limit(2).all()
                if len(records) < 2:
                    continue
                latest, previous = records

                days = days_between(latest.date, previous.date)
                if days == 0:
                    continue
                daily_average = (latest.mileage - previous.mileage) / days
                if daily_average <= limit_km:
                    continue

                notify(user_id=vehicle.owner_id, type=NotificationType.MILEAGE_ALERT,
                       title='Heavy vehicle use',
                       message=f'Heavy use detected on {vehicle.display_name}: {round(daily_average)} km/day',
                       data={'vehicle_id': vehicle.id, 'daily_average': round(daily_average)},
                       channel=NotificationChannel.IN_APP,
                       category=NotificationCategory.MAINTENANCE)
                count += 1
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Error checking mileage alerts")
        return count

    # ------------------------------------------------------------------
    # Daily
    # ------------------------------------------------------------------

    def generate_daily_predictions(self, now=None):
        now = now or utcnow()
        created = 0
        try:
            for vehicle in Vehicle.query.all():
                try:
                    created += self._predict_for_vehicle(vehicle, now)
                except Exception:
                    db.session.rollback()
                    current_app.logger.exception(f"Error generating predictions for vehicle {vehicle.id}")
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Error generating daily predictions")
        return created

    def _predict_for_vehicle(self, vehicle, now):
        expenses, maintenances = prediction_history(vehicle)

        created = 0
        expense_prediction = PredictionService.predict_monthly_expenses(vehicle, expenses, now)
        if expense_prediction:
            db.session.add(Prediction(
                vehicle_id=vehicle.id,
                type=Prediction.TYPE_EXPENSE,
                prediction=json_safe(expense_prediction),
                confidence=expense_prediction['confidence'],
                valid_until=now + timedelta(days=EXPENSE_PREDICTION_DAYS),
            ))
            created += 1

        maintenance_prediction = PredictionService.predict_next_maintenance(vehicle, maintenances, now)
        if maintenance_prediction:
            db.session.add(Prediction(
                vehicle_id=vehicle.id,
                type=Prediction.TYPE_MAINTENANCE,
                prediction=json_safe(maintenance_prediction),
                confidence=maintenance_prediction['confidence'],
                valid_until=now + timedelta(days=MAINTENANCE_PREDICTION_DAYS),
            ))
            created += 1

        db.session.commit()
        return created

    def check_expense_limits(self, now=None):
        """Warn users whose month-to-date spend exceeds their monthly limit."""
        now = now or utcnow()
        month_start, month_end = month_bounds(now)
        count = 0
        try:
            for settings in UserSettings.query.all():
                limit = settings.get_advanced('monthly_expense_limit')
                if not limit:
                    continue

                total = db.session.query(func.coalesce(func.sum(Expense.amount), 0)).join(Vehicle).filter(
                    Vehicle.owner_id == settings.user_id,
                    Expense.date >= month_start,
                    Expense.date < month_end,
                ).scalar()
                total = float(total or 0)
                if total <= float(limit):
                    continue

                self.services.notification_service.create_notification(
                    user_id=settings.user_id,
                    type=NotificationType.EXPENSE_LIMIT,
                    title='Monthly expense limit exceeded',
                    message=f'Expenses this month: {total:.2f} (limit {float(limit):.2f})',
                    data={'monthly_expenses': round(total, 2), 'limit': limit},
                    channel=NotificationChannel.IN_APP,
                    category=NotificationCategory.EXPENSES,
                )
                count += 1
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Error checking expense limits")
        return count

    # ------------------------------------------------------------------
    # Weekly
    # ------------------------------------------------------------------

    def clean_old_notifications(self, now=None):
        now = now or utcnow()
        retention_days = current_app.config.get('NOTIFICATION_RETENTION_DAYS', 30)
        try:
            deleted = Notification.query.filter(
                Notification.read.is_(True),
                Notification.created_at < now - timedelta(days=retention_days),
            ).delete(synchronize_session=False)
            db.session.commit()
            current_app.logger.info(f"Removed {deleted} old notifications")
            return deleted
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Error cleaning old notifications")
            return 0

    def generate_weekly_reports(self, now=None):
        now = now or utcnow()
        created = 0
        try:
            for user in User.query.all():
                report = PredictionService.generate_weekly_report(user, user.vehicles, now)
                db.session.add(Report(
                    user_id=user.id,
                    type=Report.TYPE_WEEKLY_SUMMARY,
                    period='weekly',
                    data=json_safe(report),
                    created_at=now,
                ))
                created += 1
            db.session.commit()
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Error generating weekly reports")
            return 0
        return created
