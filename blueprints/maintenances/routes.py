from flask import jsonify, request
from . import maintenances_bp
from .forms import MaintenanceForm, MaintenanceUpdateForm
from models.maintenance import Maintenance
from models.enums import MaintenanceStatus, MaintenanceType
from services import get_services
from utils.db_helpers import owned_vehicle_ids, owned_vehicle_or_404, owned_record_or_404
from utils.forms import validate_json, submitted_data, enum_arg


@maintenances_bp.route('', methods=['GET'])
def index():
    """Maintenances across the user's vehicles, filterable by vehicle, status and type."""
    vehicle_id = request.args.get('vehicle_id', type=int)
    if vehicle_id is not None:
        owned_vehicle_or_404(vehicle_id)

    maintenances = get_services().maintenance_service.find_all(
        vehicle_id=vehicle_id,
        vehicle_ids=owned_vehicle_ids(),
        status=enum_arg('status', MaintenanceStatus),
        type=enum_arg('type', MaintenanceType),
    )
    return jsonify({'maintenances': [m.to_dict() for m in maintenances]})


@maintenances_bp.route('/upcoming', methods=['GET'])
def upcoming():
    days = request.args.get('days', 30, type=int)
    maintenances = get_services().maintenance_service.get_upcoming_maintenances(
        days=days, vehicle_ids=owned_vehicle_ids()
    )
    return jsonify({'maintenances': [m.to_dict() for m in maintenances]})


@maintenances_bp.route('/vehicle/<int:vehicle_id>', methods=['GET'])
def by_vehicle(vehicle_id):
    vehicle = owned_vehicle_or_404(vehicle_id)
    maintenances = get_services().maintenance_service.find_by_vehicle(vehicle.id)
    return jsonify({'maintenances': [m.to_dict() for m in maintenances]})


@maintenances_bp.route('', methods=['POST'])
def create():
    form = validate_json(MaintenanceForm)
    owned_vehicle_or_404(form.vehicle_id.data)
    maintenance = get_services().maintenance_service.create(form.data)
    return jsonify({'maintenance': maintenance.to_dict()}), 201


@maintenances_bp.route('/<int:maintenance_id>', methods=['GET'])
def detail(maintenance_id):
    maintenance = owned_record_or_404(Maintenance, maintenance_id)
    return jsonify({'maintenance': maintenance.to_dict()})


@maintenances_bp.route('/<int:maintenance_id>', methods=['PUT', 'PATCH'])
def update(maintenance_id):
    maintenance = owned_record_or_404(Maintenance, maintenance_id)
    form = validate_json(MaintenanceUpdateForm)
    maintenance = get_services().maintenance_service.update(maintenance.id, submitted_data(form))
    return jsonify({'maintenance': maintenance.to_dict()})


@maintenances_bp.route('/<int:maintenance_id>', methods=['DELETE'])
def delete(maintenance_id):
    maintenance = owned_record_or_404(Maintenance, maintenance_id)
    get_services().maintenance_service.delete(maintenance.id)
    return '', 204
