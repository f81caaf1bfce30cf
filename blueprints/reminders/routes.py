from flask import jsonify, request
from . import reminders_bp
from .forms import (
    ReminderForm, ReminderUpdateForm, SmartReminderForm, MileageUpdateForm, MileageReminderForm,
)
from models.reminders import Reminder
from models.enums import ReminderType
from services import get_services
from services.exceptions import ValidationError
from utils.db_helpers import owned_vehicle_ids, owned_vehicle_or_404, owned_record_or_404
from utils.forms import validate_json, submitted_data, enum_arg, bool_arg


def _reminders_json(reminders):
    return jsonify({'reminders': [r.to_dict() for r in reminders]})


@reminders_bp.route('', methods=['GET'])
def index():
    vehicle_id = request.args.get('vehicle_id', type=int)
    if vehicle_id is not None:
        owned_vehicle_or_404(vehicle_id)

    reminders = get_services().reminder_service.find_all(
        vehicle_id=vehicle_id,
        vehicle_ids=owned_vehicle_ids(),
        completed=bool_arg('completed'),
        type=enum_arg('type', ReminderType),
    )
    return _reminders_json(reminders)


@reminders_bp.route('', methods=['POST'])
def create():
    form = validate_json(ReminderForm)
    owned_vehicle_or_404(form.vehicle_id.data)
    reminder = get_services().reminder_service.create(form.data)
    return jsonify({'reminder': reminder.to_dict()}), 201


@reminders_bp.route('/<int:reminder_id>', methods=['GET'])
def detail(reminder_id):
    reminder = owned_record_or_404(Reminder, reminder_id)
    return jsonify({'reminder': reminder.to_dict()})


@reminders_bp.route('/<int:reminder_id>', methods=['PUT', 'PATCH'])
def update(reminder_id):
    reminder = owned_record_or_404(Reminder, reminder_id)
    form = validate_json(ReminderUpdateForm)
    reminder = get_services().reminder_service.update(reminder.id, submitted_data(form))
    return jsonify({'reminder': reminder.to_dict()})


@reminders_bp.route('/<int:reminder_id>', methods=['DELETE'])
def delete(reminder_id):
    reminder = owned_record_or_404(Reminder, reminder_id)
    get_services().reminder_service.delete(reminder.id)
    return '', 204


@reminders_bp.route('/<int:reminder_id>/complete', methods=['POST'])
def complete(reminder_id):
    """Complete a reminder; a recurring one comes back as a new row."""
    reminder = owned_record_or_404(Reminder, reminder_id)
    reminder = get_services().reminder_service.mark_as_completed(reminder.id)
    return jsonify({'reminder': reminder.to_dict()})


@reminders_bp.route('/smart', methods=['POST'])
def create_smart():
    form = validate_json(SmartReminderForm)
    vehicle = owned_vehicle_or_404(form.vehicle_id.data)
    reminder = get_services().reminder_service.create_smart_reminder(vehicle.id, form.reminder_type.data)
    return jsonify({'reminder': reminder.to_dict()}), 201


@reminders_bp.route('/recurring', methods=['POST'])
def create_recurring():
    form = validate_json(ReminderForm)
    owned_vehicle_or_404(form.vehicle_id.data)
    reminder = get_services().reminder_service.create_recurring_reminder(form.data)
    return jsonify({'reminder': reminder.to_dict()}), 201


@reminders_bp.route('/upcoming', methods=['GET'])
def upcoming():
    vehicle_id = request.args.get('vehicle_id', type=int)
    if vehicle_id is not None:
        owned_vehicle_or_404(vehicle_id)
    reminders = get_services().reminder_service.get_upcoming_reminders(
        vehicle_id=vehicle_id,
        vehicle_ids=owned_vehicle_ids(),
        days=request.args.get('days', 30, type=int),
    )
    return _reminders_json(reminders)


@reminders_bp.route('/mileage', methods=['GET'])
def mileage_reminders():
    vehicle_id = request.args.get('vehicle_id', type=int)
    if vehicle_id is not None:
        owned_vehicle_or_404(vehicle_id)
    reminders = get_services().reminder_service.get_mileage_based_reminders(
        vehicle_id=vehicle_id, vehicle_ids=owned_vehicle_ids()
    )
    return _reminders_json(reminders)


@reminders_bp.route('/mileage', methods=['POST'])
def create_mileage_reminder():
    form = validate_json(MileageReminderForm)
    vehicle = owned_vehicle_or_404(form.vehicle_id.data)
    reminder = get_services().mileage_notification_service.create_mileage_reminder(
        vehicle.id,
        form.description.data,
        form.due_mileage.data,
        interval_mileage=form.interval_mileage.data,
        recurring=form.recurring.data,
    )
    return jsonify({'reminder': reminder.to_dict()}), 201


@reminders_bp.route('/mileage-update', methods=['POST'])
def mileage_update():
    """
    Record an odometer reading and report the reminders it reaches.

    Unlike ``PUT /vehicles/<id>/mileage`` nothing is notified or completed.
    """
    form = validate_json(MileageUpdateForm)
    vehicle = owned_vehicle_or_404(form.vehicle_id.data)
    result = get_services().reminder_service.update_vehicle_mileage_and_check_reminders(
        vehicle.id, form.mileage.data, notes=form.notes.data
    )
    result['reminders'] = [r.to_dict() for r in result['reminders']]
    return jsonify(result)


@reminders_bp.route('/next-mileage', methods=['GET'])
def next_mileage():
    current_mileage = request.args.get('current_mileage', type=int)
    interval_km = request.args.get('interval_km', type=int)
    if current_mileage is None or interval_km is None:
        raise ValidationError('current_mileage and interval_km are required')

    next_mileage = get_services().mileage_notification_service.calculate_next_maintenance_mileage(
        current_mileage, interval_km
    )
    return jsonify({
        'current_mileage': current_mileage,
        'interval_km': interval_km,
        'next_maintenance_mileage': next_mileage,
    })
