from datetime import datetime

from flask import jsonify, request
from . import expenses_bp
from .forms import ExpenseForm, ExpenseUpdateForm
from models.expenses import Expense
from services import get_services
from services.exceptions import ValidationError
from utils.db_helpers import owned_vehicle_ids, owned_vehicle_or_404, owned_record_or_404
from utils.dates import utcnow
from utils.forms import validate_json, submitted_data


def _date_arg(name):
    value = request.args.get(name)
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise ValidationError(f'Invalid {name}', errors={name: ['Expected an ISO date']})


@expenses_bp.route('', methods=['GET'])
def index():
    """List expenses with simple filters"""
    vehicle_id = request.args.get('vehicle_id', type=int)
    if vehicle_id is not None:
        owned_vehicle_or_404(vehicle_id)

    category = request.args.get('category')
    expenses = get_services().expense_service.find_all(
        vehicle_id=vehicle_id,
        vehicle_ids=owned_vehicle_ids(),
        category=category.upper() if category else None,
        start_date=_date_arg('start_date'),
        end_date=_date_arg('end_date'),
    )
    return jsonify({
        'expenses': [e.to_dict() for e in expenses],
        'total': float(sum(e.amount for e in expenses)),
    })


@expenses_bp.route('', methods=['POST'])
def create():
    form = validate_json(ExpenseForm)
    owned_vehicle_or_404(form.vehicle_id.data)
    expense = get_services().expense_service.create(form.data)
    return jsonify({'expense': expense.to_dict()}), 201


@expenses_bp.route('/<int:expense_id>', methods=['GET'])
def detail(expense_id):
    expense = owned_record_or_404(Expense, expense_id)
    return jsonify({'expense': expense.to_dict()})


@expenses_bp.route('/<int:expense_id>', methods=['PUT', 'PATCH'])
def update(expense_id):
    expense = owned_record_or_404(Expense, expense_id)
    form = validate_json(ExpenseUpdateForm)
    expense = get_services().expense_service.update(expense.id, submitted_data(form))
    return jsonify({'expense': expense.to_dict()})


@expenses_bp.route('/<int:expense_id>', methods=['DELETE'])
def delete(expense_id):
    expense = owned_record_or_404(Expense, expense_id)
    get_services().expense_service.delete(expense.id)
    return '', 204


@expenses_bp.route('/summary/categories', methods=['GET'])
def summary_by_category():
    totals = get_services().expense_service.get_total_by_category(vehicle_ids=owned_vehicle_ids())
    return jsonify({'categories': totals})


@expenses_bp.route('/summary/monthly', methods=['GET'])
def summary_by_month():
    year = request.args.get('year', type=int) or utcnow().year
    months = get_services().expense_service.get_monthly_expenses(
        vehicle_ids=owned_vehicle_ids(), year=year
    )
    return jsonify({'year': year, 'months': months})
