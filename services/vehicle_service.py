"""
Vehicle Service
===============
Vehicle registration and maintenance of the owner's fleet.

License plates
--------------
Plates are stored upper-cased with surrounding whitespace stripped and are
unique per owner: two owners may register the same plate, one owner may not
register it twice.

Primary entry points
--------------------
  create()     -- register a vehicle for an owner
  find_all()   -- an owner's vehicles, newest first
  update()     -- edit details (plate uniqueness re-checked)
  delete()     -- remove a vehicle and everything that hangs off it
"""
from flask import current_app

from extensions import db
from models.vehicles import Vehicle
from models.enums import VehicleType
from services.exceptions import DuplicateLicensePlateError, NotFoundError


def normalize_plate(license_plate):
    return (license_plate or '').strip().upper()


class VehicleService:

    UPDATABLE_FIELDS = ('brand', 'model', 'year', 'license_plate', 'type', 'color', 'mileage')

    def create(self, owner_id, data):
        plate = normalize_plate(data.get('license_plate'))
        self._ensure_plate_available(owner_id, plate)

        vehicle = Vehicle(
            owner_id=owner_id,
            brand=data['brand'],
            model=data['model'],
            year=data['year'],
            license_plate=plate,
            type=VehicleType(data.get('type') or VehicleType.CAR).value,
            color=data.get('color'),
            mileage=data.get('mileage') or 0,
        )
        db.session.add(vehicle)
        db.session.commit()
        current_app.logger.info(f"Vehicle {vehicle.id} ({plate}) registered for user {owner_id}")
        return vehicle

    def find_all(self, owner_id):
        return Vehicle.query.filter_by(owner_id=owner_id).order_by(
            Vehicle.created_at.desc(), Vehicle.id.desc()
        ).all()

    def find_by_id(self, vehicle_id):
        return db.session.get(Vehicle, vehicle_id)

    def update(self, vehicle_id, data):
        vehicle = self.find_by_id(vehicle_id)
        if vehicle is None:
            raise NotFoundError('Vehicle', vehicle_id)

        if data.get('license_plate') is not None:
            plate = normalize_plate(data['license_plate'])
            if plate != vehicle.license_plate:
                self._ensure_plate_available(vehicle.owner_id, plate)
            data = dict(data, license_plate=plate)
        if data.get('type') is not None:
            data = dict(data, type=VehicleType(data['type']).value)

        for field in self.UPDATABLE_FIELDS:
            if field in data and data[field] is not None:
                setattr(vehicle, field, data[field])

        db.session.commit()
        return vehicle

    def delete(self, vehicle_id):
        """Delete a vehicle; maintenances, expenses, reminders, records and predictions go with it."""
        vehicle = self.find_by_id(vehicle_id)
        if vehicle is None:
            raise NotFoundError('Vehicle', vehicle_id)
        db.session.delete(vehicle)
        db.session.commit()
        current_app.logger.info(f"Vehicle {vehicle_id} deleted")
        return True

    @staticmethod
    def _ensure_plate_available(owner_id, plate):
        exists = Vehicle.query.filter_by(owner_id=owner_id, license_plate=plate).first()
        if exists is not None:
            raise DuplicateLicensePlateError(plate)
