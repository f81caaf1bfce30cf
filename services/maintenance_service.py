"""
Maintenance Service
===================
Maintenance CRUD plus the side effects that fan out from it.

Side effects
------------
Creating a maintenance, after the row is committed, runs three independent
best-effort steps:

  1. MAINTENANCE_SCHEDULED notification to the vehicle owner
  2. companion TIME_BASED reminder at 08:00 on the scheduled date
  3. companion MAINTENANCE expense dated on the scheduled date (cost > 0 only)

Marking a maintenance COMPLETED sends MAINTENANCE_COMPLETED and, when the
cost is new or has changed, upserts the MAINTENANCE expense matching
(vehicle, description).  Completing twice with the same cost leaves exactly
one expense.

None of these steps is transactional with the maintenance itself: a failure
is rolled back, logged, and the maintenance operation still succeeds.
"""
from datetime import timedelta
from decimal import Decimal

from flask import current_app

from extensions import db
from models.maintenance import Maintenance
from models.users import User
from models.vehicles import Vehicle
from models.enums import (
    ExpenseCategory, MaintenanceStatus, MaintenanceType, NotificationCategory,
    NotificationChannel, NotificationType, ReminderType,
)
from services.exceptions import NotFoundError, ValidationError
from utils.dates import utcnow


class MaintenanceService:

    UPDATABLE_FIELDS = ('type', 'status', 'description', 'scheduled_date', 'completed_date',
                        'cost', 'notes', 'mechanic_id')

    def __init__(self, notification_service, reminder_service, expense_service):
        self.notification_service = notification_service
        self.reminder_service = reminder_service
        self.expense_service = expense_service

    # ------------------------------------------------------------------
    # Create / update
    # ------------------------------------------------------------------

    def create(self, data):
        vehicle = db.session.get(Vehicle, data.get('vehicle_id'))
        if vehicle is None:
            raise NotFoundError('Vehicle', data.get('vehicle_id'))
        self._check_mechanic(data.get('mechanic_id'))

        maintenance = Maintenance(
            vehicle_id=vehicle.id,
            mechanic_id=data.get('mechanic_id'),
            type=MaintenanceType(data.get('type') or MaintenanceType.PREVENTIVE).value,
            status=MaintenanceStatus(data.get('status') or MaintenanceStatus.SCHEDULED).value,
            description=data['description'],
            scheduled_date=data['scheduled_date'],
            completed_date=data.get('completed_date'),
            cost=_to_cost(data.get('cost')),
            notes=data.get('notes'),
        )
        db.session.add(maintenance)
        db.session.commit()
        current_app.logger.info(f"Maintenance {maintenance.id} scheduled for vehicle {vehicle.id}")

        self._run_side_effect('scheduled notification', self._notify_scheduled, maintenance)
        self._run_side_effect('companion reminder', self._create_companion_reminder, maintenance)
        if maintenance.cost is not None and maintenance.cost > 0:
            self._run_side_effect('companion expense', self._create_companion_expense, maintenance)

        return maintenance

    def update(self, maintenance_id, data):
        maintenance = self.find_by_id(maintenance_id)
        if maintenance is None:
            raise NotFoundError('Maintenance', maintenance_id)
        if 'mechanic_id' in data:
            self._check_mechanic(data['mechanic_id'])

        previous_cost = maintenance.cost
        for field in self.UPDATABLE_FIELDS:
            if field not in data:
                continue
            value = data[field]
            if field == 'type' and value is not None:
                value = MaintenanceType(value).value
            elif field == 'status' and value is not None:
                value = MaintenanceStatus(value).value
            elif field == 'cost':
                value = _to_cost(value)
            if value is None and field in ('type', 'status', 'description', 'scheduled_date'):
                continue
            setattr(maintenance, field, value)

        completing = data.get('status') == MaintenanceStatus.COMPLETED
        if completing and maintenance.completed_date is None:
            maintenance.completed_date = utcnow()

        db.session.commit()

        if completing:
            self._run_side_effect('completed notification', self._notify_completed, maintenance)
            cost = maintenance.cost
            cost_changed = previous_cost is None or Decimal(previous_cost) != Decimal(cost or 0)
            if cost is not None and cost > 0 and cost_changed:
                self._run_side_effect('maintenance expense', self._sync_expense, maintenance)

        return maintenance

    def delete(self, maintenance_id):
        maintenance = self.find_by_id(maintenance_id)
        if maintenance is None:
            raise NotFoundError('Maintenance', maintenance_id)
        db.session.delete(maintenance)
        db.session.commit()
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_all(self, vehicle_id=None, vehicle_ids=None, mechanic_id=None, status=None, type=None):
        query = Maintenance.query
        if vehicle_id is not None:
            query = query.filter(Maintenance.vehicle_id == vehicle_id)
        if vehicle_ids is not None:
            query = query.filter(Maintenance.vehicle_id.in_(vehicle_ids))
        if mechanic_id is not None:
            query = query.filter(Maintenance.mechanic_id == mechanic_id)
        if status:
            query = query.filter(Maintenance.status == MaintenanceStatus(status).value)
        if type:
            query = query.filter(Maintenance.type == MaintenanceType(type).value)
        return query.order_by(Maintenance.scheduled_date.desc(), Maintenance.id.desc()).all()

    def find_by_id(self, maintenance_id):
        return db.session.get(Maintenance, maintenance_id)

    def find_by_vehicle(self, vehicle_id):
        return self.find_all(vehicle_id=vehicle_id)

    def find_by_mechanic(self, mechanic_id):
        return self.find_all(mechanic_id=mechanic_id)

    def get_upcoming_maintenances(self, days=30, vehicle_ids=None):
        """SCHEDULED or IN_PROGRESS maintenances within the next *days* days."""
        now = utcnow()
        query = Maintenance.query.filter(
            Maintenance.scheduled_date >= now,
            Maintenance.scheduled_date <= now + timedelta(days=days),
            Maintenance.status.in_([MaintenanceStatus.SCHEDULED.value, MaintenanceStatus.IN_PROGRESS.value]),
        )
        if vehicle_ids is not None:
            query = query.filter(Maintenance.vehicle_id.in_(vehicle_ids))
        return query.order_by(Maintenance.scheduled_date.asc()).all()

    def get_overdue_maintenances(self, now=None):
        """SCHEDULED maintenances whose date has passed."""
        now = now or utcnow()
        return Maintenance.query.filter(
            Maintenance.status == MaintenanceStatus.SCHEDULED.value,
            Maintenance.scheduled_date < now,
        ).order_by(Maintenance.scheduled_date.asc()).all()

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------

    @staticmethod
    def _run_side_effect(name, step, maintenance):
        try:
            step(maintenance)
        except Exception:
            db.session.rollback()
            current_app.logger.exception(f"Maintenance {maintenance.id}: {name} failed")

    def _notify_scheduled(self, maintenance):
        vehicle = maintenance.vehicle
        self.notification_service.create_notification(
            user_id=vehicle.owner_id,
            type=NotificationType.MAINTENANCE_SCHEDULED,
            title='Maintenance scheduled',
            message=(f"{maintenance.description} for {vehicle.display_name} "
                     f"scheduled on {maintenance.scheduled_date:%d/%m/%Y}."),
            data={'maintenance_id': maintenance.id, 'vehicle_id': vehicle.id},
            channel=NotificationChannel.IN_APP,
            category=NotificationCategory.MAINTENANCE,
        )

    def _notify_completed(self, maintenance):
        vehicle = maintenance.vehicle
        self.notification_service.create_notification(
            user_id=vehicle.owner_id,
            type=NotificationType.MAINTENANCE_COMPLETED,
            title='Maintenance completed',
            message=f"{maintenance.description} for {vehicle.display_name} was completed.",
            data={'maintenance_id': maintenance.id, 'vehicle_id': vehicle.id},
            channel=NotificationChannel.IN_APP,
            category=NotificationCategory.MAINTENANCE,
        )

    def _create_companion_reminder(self, maintenance):
        due = maintenance.scheduled_date.replace(hour=8, minute=0, second=0, microsecond=0)
        self.reminder_service.create({
            'vehicle_id': maintenance.vehicle_id,
            'description': f'Maintenance: {maintenance.description}',
            'type': ReminderType.TIME_BASED,
            'due_date': due,
            'recurring': False,
        })

    def _create_companion_expense(self, maintenance):
        self.expense_service.create({
            'vehicle_id': maintenance.vehicle_id,
            'description': maintenance.description,
            'category': ExpenseCategory.MAINTENANCE,
            'amount': maintenance.cost,
            'date': maintenance.scheduled_date,
        })

    def _sync_expense(self, maintenance):
        self.expense_service.upsert_maintenance_expense(
            vehicle_id=maintenance.vehicle_id,
            description=maintenance.description,
            amount=maintenance.cost,
            date=maintenance.completed_date or utcnow(),
        )

    @staticmethod
    def _check_mechanic(mechanic_id):
        if mechanic_id is None:
            return
        if db.session.get(User, mechanic_id) is None:
            raise ValidationError('Unknown mechanic', errors={'mechanic_id': ['No such user']})


def _to_cost(value):
    if value is None or value == '':
        return None
    cost = Decimal(str(value)).quantize(Decimal('0.01'))
    if cost < 0:
        raise ValidationError('Cost cannot be negative', errors={'cost': ['Must be >= 0']})
    return cost
