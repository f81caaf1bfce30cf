"""
Database query helpers for owner-scoped access.

Every record in this application hangs off a Vehicle, and every Vehicle
belongs to exactly one owner.  Routes reach data only through these helpers
so one user can never see or change another user's records.

Usage
-----
In any blueprint route::

    from utils.db_helpers import owned_vehicle_ids, owned_vehicle_or_404, owned_record_or_404

    # Restrict a service query to the current user's fleet
    expenses = services.expense_service.find_all(vehicle_ids=owned_vehicle_ids())

    # Fetch a single vehicle safely (404 if missing *or* someone else's)
    vehicle = owned_vehicle_or_404(vehicle_id)

    # Same for anything with a ``vehicle_id`` column
    reminder = owned_record_or_404(Reminder, reminder_id)
"""

from flask_login import current_user

from extensions import db
from models.vehicles import Vehicle
from services.exceptions import NotFoundError


def get_owner_id():
    """Return ``current_user.id``, or ``None`` if not authenticated."""
    if current_user.is_authenticated:
        return current_user.id
    return None


def owned_vehicle_ids(owner_id=None):
    """Ids of every vehicle the owner has.  Empty when nobody is logged in."""
    owner_id = owner_id if owner_id is not None else get_owner_id()
    if owner_id is None:
        return []
    rows = db.session.query(Vehicle.id).filter(Vehicle.owner_id == owner_id).all()
    return [row[0] for row in rows]


def owned_vehicle(vehicle_id, owner_id=None):
    """Vehicle by id, or ``None`` if it does not exist or belongs to someone else."""
    owner_id = owner_id if owner_id is not None else get_owner_id()
    if owner_id is None or vehicle_id is None:
        return None
    return Vehicle.query.filter_by(id=vehicle_id, owner_id=owner_id).first()


def owned_vehicle_or_404(vehicle_id, owner_id=None):
    vehicle = owned_vehicle(vehicle_id, owner_id)
    if vehicle is None:
        # Someone else's vehicle looks exactly like a missing one
        raise NotFoundError('Vehicle', vehicle_id)
    return vehicle


def owned_record_or_404(model, record_id, owner_id=None):
    """Fetch a vehicle-scoped record, raising NotFoundError unless the owner matches."""
    owner_id = owner_id if owner_id is not None else get_owner_id()
    record = None
    if owner_id is not None:
        record = model.query.join(Vehicle, model.vehicle_id == Vehicle.id).filter(
            model.id == record_id,
            Vehicle.owner_id == owner_id,
        ).first()
    if record is None:
        raise NotFoundError(model.__name__, record_id)
    return record
