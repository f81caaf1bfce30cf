from flask import jsonify, request
from flask_login import current_user
from . import reports_bp
from models.predictions import Prediction
from models.reports import Report
from services.cron_service import json_safe, prediction_history
from services.prediction_service import PredictionService
from utils.dates import utcnow
from utils.db_helpers import owned_vehicle_or_404
from utils.forms import bool_arg


def _latest_valid(vehicle_id, prediction_type, now):
    return Prediction.query.filter(
        Prediction.vehicle_id == vehicle_id,
        Prediction.type == prediction_type,
        Prediction.valid_until >= now,
    ).order_by(Prediction.created_at.desc(), Prediction.id.desc()).first()


def _computed(prediction_type, payload):
    if payload is None:
        return None
    return {
        'type': prediction_type,
        'prediction': json_safe(payload),
        'confidence': payload['confidence'],
        'source': 'computed',
    }


@reports_bp.route('/predictions/<int:vehicle_id>', methods=['GET'])
def predictions(vehicle_id):
    """
    Expense and maintenance forecasts for a vehicle.

    The newest still-valid stored prediction is returned per type; missing
    ones (or all of them with ``?refresh=true``) are computed on the spot and
    not persisted.
    """
    vehicle = owned_vehicle_or_404(vehicle_id)
    now = utcnow()
    refresh = bool_arg('refresh') or False

    result = {}
    for prediction_type in (Prediction.TYPE_EXPENSE, Prediction.TYPE_MAINTENANCE):
        stored = None if refresh else _latest_valid(vehicle.id, prediction_type, now)
        if stored is not None:
            result[prediction_type] = dict(stored.to_dict(), source='stored')

    missing = [t for t in (Prediction.TYPE_EXPENSE, Prediction.TYPE_MAINTENANCE) if t not in result]
    if missing:
        expenses, maintenances = prediction_history(vehicle)
        if Prediction.TYPE_EXPENSE in missing:
            result[Prediction.TYPE_EXPENSE] = _computed(
                Prediction.TYPE_EXPENSE,
                PredictionService.predict_monthly_expenses(vehicle, expenses, now),
            )
        if Prediction.TYPE_MAINTENANCE in missing:
            result[Prediction.TYPE_MAINTENANCE] = _computed(
                Prediction.TYPE_MAINTENANCE,
                PredictionService.predict_next_maintenance(vehicle, maintenances, now),
            )

    return jsonify({
        'vehicle_id': vehicle.id,
        'status': PredictionService.get_vehicle_status(vehicle, now),
        'predictions': result,
    })


@reports_bp.route('/weekly', methods=['GET'])
def weekly_reports():
    limit = max(1, request.args.get('limit', 10, type=int))
    reports = Report.query.filter_by(
        user_id=current_user.id, type=Report.TYPE_WEEKLY_SUMMARY
    ).order_by(Report.created_at.desc(), Report.id.desc()).limit(limit).all()
    return jsonify({'reports': [r.to_dict() for r in reports]})


@reports_bp.route('/weekly/current', methods=['GET'])
def current_weekly_report():
    """This week's summary computed now, without waiting for Sunday's job."""
    report = PredictionService.generate_weekly_report(current_user, current_user.vehicles, utcnow())
    return jsonify({'report': json_safe(report)})
