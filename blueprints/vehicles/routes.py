from flask import jsonify
from flask_login import current_user
from . import vehicles_bp
from .forms import VehicleForm, VehicleUpdateForm, MileageForm
from models.mileage_records import MileageRecord
from services import get_services
from utils.db_helpers import owned_vehicle_or_404
from utils.forms import validate_json, submitted_data


@vehicles_bp.route('', methods=['GET'])
def index():
    vehicles = get_services().vehicle_service.find_all(current_user.id)
    return jsonify({'vehicles': [v.to_dict() for v in vehicles]})


@vehicles_bp.route('', methods=['POST'])
def create():
    form = validate_json(VehicleForm)
    vehicle = get_services().vehicle_service.create(current_user.id, form.data)
    return jsonify({'vehicle': vehicle.to_dict()}), 201


@vehicles_bp.route('/<int:vehicle_id>', methods=['GET'])
def detail(vehicle_id):
    vehicle = owned_vehicle_or_404(vehicle_id)
    return jsonify({'vehicle': vehicle.to_dict()})


@vehicles_bp.route('/<int:vehicle_id>', methods=['PUT', 'PATCH'])
def update(vehicle_id):
    vehicle = owned_vehicle_or_404(vehicle_id)
    form = validate_json(VehicleUpdateForm)
    vehicle = get_services().vehicle_service.update(vehicle.id, submitted_data(form))
    return jsonify({'vehicle': vehicle.to_dict()})


@vehicles_bp.route('/<int:vehicle_id>', methods=['DELETE'])
def delete(vehicle_id):
    vehicle = owned_vehicle_or_404(vehicle_id)
    get_services().vehicle_service.delete(vehicle.id)
    return '', 204


@vehicles_bp.route('/<int:vehicle_id>/mileage', methods=['PUT'])
def update_mileage(vehicle_id):
    """Record a new odometer reading; reached mileage reminders notify and close."""
    vehicle = owned_vehicle_or_404(vehicle_id)
    form = validate_json(MileageForm)
    result = get_services().mileage_notification_service.update_vehicle_mileage(
        vehicle.id, form.mileage.data, notes=form.notes.data or 'Manual mileage update'
    )
    return jsonify({
        'vehicle': vehicle.to_dict(),
        'triggered_reminders': [r.to_dict() for r in result['triggered_reminders']],
    })


@vehicles_bp.route('/<int:vehicle_id>/mileage-records', methods=['GET'])
def mileage_records(vehicle_id):
    vehicle = owned_vehicle_or_404(vehicle_id)
    records = MileageRecord.query.filter_by(vehicle_id=vehicle.id).order_by(
        MileageRecord.date.desc(), MileageRecord.id.desc()
    ).all()
    return jsonify({'mileage_records': [r.to_dict() for r in records]})
