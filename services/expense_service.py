"""
Expense Service
===============
CRUD and aggregates for vehicle expenses.

Amounts are handled as Decimal and must be positive.  Maintenance completion
writes its cost through ``upsert_maintenance_expense`` so a repeated
"completed" update re-uses the matching row instead of adding another one.
"""
from decimal import Decimal, InvalidOperation

from flask import current_app
from sqlalchemy import func

from extensions import db
from models.expenses import Expense
from models.vehicles import Vehicle
from models.enums import ExpenseCategory
from services.exceptions import NotFoundError, ValidationError
from utils.dates import utcnow, year_bounds


def to_amount(value):
    """Coerce *value* into a positive Decimal with two places."""
    try:
        amount = Decimal(str(value)).quantize(Decimal('0.01'))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError('Amount must be a number', errors={'amount': ['Not a valid number']})
    if amount <= 0:
        raise ValidationError('Amount must be greater than zero', errors={'amount': ['Must be > 0']})
    return amount


class ExpenseService:

    UPDATABLE_FIELDS = ('description', 'category', 'amount', 'date')

    def create(self, data):
        vehicle = db.session.get(Vehicle, data.get('vehicle_id'))
        if vehicle is None:
            raise NotFoundError('Vehicle', data.get('vehicle_id'))

        expense = Expense(
            vehicle_id=vehicle.id,
            description=data['description'],
            category=(data.get('category') or ExpenseCategory.OTHER).upper(),
            amount=to_amount(data.get('amount')),
            date=data.get('date') or utcnow(),
        )
        db.session.add(expense)
        db.session.commit()
        current_app.logger.info(
            f"Expense {expense.id} created for vehicle {vehicle.id}: {expense.category} {expense.amount}"
        )
        return expense

    def find_all(self, vehicle_id=None, vehicle_ids=None, category=None, start_date=None, end_date=None):
        query = Expense.query
        if vehicle_id is not None:
            query = query.filter(Expense.vehicle_id == vehicle_id)
        if vehicle_ids is not None:
            query = query.filter(Expense.vehicle_id.in_(vehicle_ids))
        if category:
            query = query.filter(Expense.category == category.upper())
        if start_date:
            query = query.filter(Expense.date >= start_date)
        if end_date:
            query = query.filter(Expense.date <= end_date)
        return query.order_by(Expense.date.desc(), Expense.id.desc()).all()

    def find_by_id(self, expense_id):
        return db.session.get(Expense, expense_id)

    def find_by_vehicle(self, vehicle_id):
        return self.find_all(vehicle_id=vehicle_id)

    def update(self, expense_id, data):
        expense = self.find_by_id(expense_id)
        if expense is None:
            raise NotFoundError('Expense', expense_id)

        for field in self.UPDATABLE_FIELDS:
            if field not in data or data[field] is None:
                continue
            value = data[field]
            if field == 'amount':
                value = to_amount(value)
            elif field == 'category':
                value = value.upper()
            setattr(expense, field, value)

        db.session.commit()
        return expense

    def delete(self, expense_id):
        expense = self.find_by_id(expense_id)
        if expense is None:
            raise NotFoundError('Expense', expense_id)
        db.session.delete(expense)
        db.session.commit()
        return True

    def upsert_maintenance_expense(self, vehicle_id, description, amount, date):
        """
        Update the MAINTENANCE expense matching (vehicle, description), or
        create it.  Returns ``(expense, created)``.
        """
        expense = Expense.query.filter_by(
            vehicle_id=vehicle_id,
            description=description,
            category=ExpenseCategory.MAINTENANCE,
        ).order_by(Expense.id.asc()).first()

        if expense is not None:
            expense.amount = to_amount(amount)
            expense.date = date
            db.session.commit()
            return expense, False

        expense = self.create({
            'vehicle_id': vehicle_id,
            'description': description,
            'category': ExpenseCategory.MAINTENANCE,
            'amount': amount,
            'date': date,
        })
        return expense, True

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def get_total_by_category(self, vehicle_ids=None):
        query = db.session.query(
            Expense.category,
            func.sum(Expense.amount),
            func.count(Expense.id),
        )
        if vehicle_ids is not None:
            query = query.filter(Expense.vehicle_id.in_(vehicle_ids))
        rows = query.group_by(Expense.category).order_by(Expense.category).all()

        return [
            {'category': category, 'total': float(total or 0), 'count': count}
            for category, total, count in rows
        ]

    def get_monthly_expenses(self, vehicle_ids=None, year=None):
        """Twelve ``{month, total}`` buckets for *year* (default: current year)."""
        start, end = year_bounds(year or utcnow().year)
        query = Expense.query.filter(Expense.date >= start, Expense.date < end)
        if vehicle_ids is not None:
            query = query.filter(Expense.vehicle_id.in_(vehicle_ids))

        totals = [Decimal('0')] * 12
        for expense in query.all():
            totals[expense.date.month - 1] += Decimal(str(expense.amount))

        return [{'month': index + 1, 'total': float(total)} for index, total in enumerate(totals)]
