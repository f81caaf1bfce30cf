"""
Tests for MaintenanceService and the best-effort side effects it fans out.
"""
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from extensions import db
from models.expenses import Expense
from models.maintenance import Maintenance
from models.notifications import Notification
from models.reminders import Reminder
from services.exceptions import NotFoundError, ValidationError


SCHEDULED = datetime(2024, 6, 10, 14, 30)


def _create(services, vehicle, **overrides):
    data = {
        'vehicle_id': vehicle.id,
        'description': 'Oil and filter',
        'type': 'PREVENTIVE',
        'scheduled_date': SCHEDULED,
    }
    data.update(overrides)
    return services.maintenance_service.create(data)


class TestCreate:
    def test_creates_maintenance_with_all_side_effects(self, app, services, user, vehicle):
        maintenance = _create(services, vehicle, cost=Decimal('350.00'))

        assert maintenance.status == 'SCHEDULED'

        notification = Notification.query.filter_by(user_id=user.id, type='MAINTENANCE_SCHEDULED').one()
        assert notification.data['maintenance_id'] == maintenance.id

        reminder = Reminder.query.filter_by(vehicle_id=vehicle.id,
                                            description='Maintenance: Oil and filter').one()
        assert reminder.type == 'TIME_BASED'
        assert reminder.due_date == datetime(2024, 6, 10, 8, 0)

        expense = Expense.query.filter_by(vehicle_id=vehicle.id).one()
        assert expense.category == 'MAINTENANCE'
        assert expense.amount == Decimal('350.00')
        assert expense.date == SCHEDULED

    @pytest.mark.parametrize('cost', [None, Decimal('0')])
    def test_no_expense_without_cost(self, app, services, vehicle, cost):
        _create(services, vehicle, cost=cost)
        assert Expense.query.count() == 0

    def test_reminder_failure_does_not_undo_maintenance(self, app, services, vehicle, monkeypatch):
        def boom(data):
            raise RuntimeError('reminder store down')
        monkeypatch.setattr(services.reminder_service, 'create', boom)

        maintenance = _create(services, vehicle, cost=Decimal('120'))

        assert maintenance.id is not None
        assert db.session.get(Maintenance, maintenance.id) is not None
        assert Reminder.query.count() == 0
        # the other two steps still ran
        assert Expense.query.count() == 1
        assert Notification.query.filter_by(type='MAINTENANCE_SCHEDULED').count() == 1

    def test_notification_failure_does_not_block_other_steps(self, app, services, vehicle, monkeypatch):
        def boom(**kwargs):
            raise RuntimeError('notification store down')
        monkeypatch.setattr(services.notification_service, 'create_notification', boom)

        maintenance = _create(services, vehicle, cost=Decimal('80'))

        assert db.session.get(Maintenance, maintenance.id) is not None
        assert Reminder.query.count() == 1
        assert Expense.query.count() == 1

    def test_unknown_vehicle(self, app, services):
        with pytest.raises(NotFoundError):
            services.maintenance_service.create({'vehicle_id': 77, 'description': 'x',
                                                 'scheduled_date': SCHEDULED})

    def test_unknown_mechanic(self, app, services, vehicle):
        with pytest.raises(ValidationError):
            _create(services, vehicle, mechanic_id=999)

    def test_negative_cost(self, app, services, vehicle):
        with pytest.raises(ValidationError):
            _create(services, vehicle, cost=Decimal('-5'))


class TestCompletion:
    def test_completing_twice_with_same_cost_keeps_one_expense(self, app, services, vehicle):
        maintenance = _create(services, vehicle)

        services.maintenance_service.update(maintenance.id, {'status': 'COMPLETED', 'cost': Decimal('500')})
        services.maintenance_service.update(maintenance.id, {'status': 'COMPLETED', 'cost': Decimal('500')})

        expenses = Expense.query.filter_by(vehicle_id=vehicle.id, category='MAINTENANCE').all()
        assert len(expenses) == 1
        assert expenses[0].amount == Decimal('500.00')

    def test_cost_change_updates_existing_expense(self, app, services, vehicle):
        maintenance = _create(services, vehicle, cost=Decimal('300'))

        services.maintenance_service.update(maintenance.id, {'status': 'COMPLETED', 'cost': Decimal('420')})

        expense = Expense.query.filter_by(vehicle_id=vehicle.id).one()
        assert expense.amount == Decimal('420.00')

    def test_completion_sets_date_and_notifies(self, app, services, user, vehicle, frozen_now):
        now = frozen_now(datetime(2024, 6, 11, 9, 0))
        maintenance = _create(services, vehicle)

        services.maintenance_service.update(maintenance.id, {'status': 'COMPLETED'})

        assert maintenance.completed_date == now
        assert Notification.query.filter_by(user_id=user.id, type='MAINTENANCE_COMPLETED').count() == 1
        assert Expense.query.count() == 0

    def test_explicit_completed_date_kept(self, app, services, vehicle):
        maintenance = _create(services, vehicle)
        done = datetime(2024, 6, 10, 17, 0)

        services.maintenance_service.update(maintenance.id, {
            'status': 'COMPLETED', 'completed_date': done, 'cost': Decimal('99.90'),
        })

        assert maintenance.completed_date == done
        assert Expense.query.one().date == done

    def test_plain_update_has_no_side_effects(self, app, services, vehicle):
        maintenance = _create(services, vehicle)
        before = Notification.query.count()

        services.maintenance_service.update(maintenance.id, {'notes': 'Bring own oil', 'cost': Decimal('10')})

        assert maintenance.notes == 'Bring own oil'
        assert Notification.query.count() == before
        assert Expense.query.count() == 0

    def test_update_missing(self, app, services):
        with pytest.raises(NotFoundError):
            services.maintenance_service.update(4242, {'status': 'COMPLETED'})


class TestQueries:
    def test_upcoming_and_overdue(self, app, services, vehicle, make_maintenance):
        now = datetime.utcnow()
        overdue = make_maintenance(vehicle, now - timedelta(days=2), description='Overdue')
        soon = make_maintenance(vehicle, now + timedelta(days=3), description='Soon')
        make_maintenance(vehicle, now + timedelta(days=60), description='Later')
        make_maintenance(vehicle, now + timedelta(days=1), status='CANCELLED', description='Cancelled')

        upcoming = services.maintenance_service.get_upcoming_maintenances(days=30)
        late = services.maintenance_service.get_overdue_maintenances(now)

        assert [m.id for m in upcoming] == [soon.id]
        assert [m.id for m in late] == [overdue.id]

    def test_find_all_filters(self, app, services, user, mechanic, vehicle, make_maintenance):
        assigned = make_maintenance(vehicle, SCHEDULED, mechanic_id=mechanic.id, type='CORRECTIVE')
        make_maintenance(vehicle, SCHEDULED, status='COMPLETED')

        assert [m.id for m in services.maintenance_service.find_by_mechanic(mechanic.id)] == [assigned.id]
        assert [m.id for m in services.maintenance_service.find_all(status='SCHEDULED')] == [assigned.id]
        assert [m.id for m in services.maintenance_service.find_all(type='CORRECTIVE')] == [assigned.id]
        assert services.maintenance_service.find_all(vehicle_ids=[]) == []

    def test_delete(self, app, services, vehicle, make_maintenance):
        maintenance = make_maintenance(vehicle, SCHEDULED)
        services.maintenance_service.delete(maintenance.id)
        assert Maintenance.query.count() == 0
