from extensions import db
from datetime import datetime

from models.enums import MaintenanceStatus, MaintenanceType


class Maintenance(db.Model):
    """A scheduled or performed service on a vehicle"""
    __tablename__ = 'maintenances'

    id = db.Column(db.Integer, primary_key=True)
    vehicle_id = db.Column(db.Integer, db.ForeignKey('vehicles.id', ondelete='CASCADE'), nullable=False, index=True)
    mechanic_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True)
    type = db.Column(db.String(20), nullable=False, default=MaintenanceType.PREVENTIVE.value)
    status = db.Column(db.String(20), nullable=False, default=MaintenanceStatus.SCHEDULED.value, index=True)
    description = db.Column(db.String(255), nullable=False)
    scheduled_date = db.Column(db.DateTime, nullable=False)
    completed_date = db.Column(db.DateTime)
    cost = db.Column(db.Numeric(10, 2))  # unknown until quoted/paid
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    vehicle = db.relationship('Vehicle', back_populates='maintenances')
    mechanic = db.relationship('User', foreign_keys=[mechanic_id])

    @property
    def is_completed(self):
        return self.status == MaintenanceStatus.COMPLETED

    def to_dict(self):
        return {
            'id': self.id,
            'vehicle_id': self.vehicle_id,
            'mechanic_id': self.mechanic_id,
            'type': self.type,
            'status': self.status,
            'description': self.description,
            'scheduled_date': self.scheduled_date.isoformat() if self.scheduled_date else None,
            'completed_date': self.completed_date.isoformat() if self.completed_date else None,
            'cost': float(self.cost) if self.cost is not None else None,
            'notes': self.notes,
            'vehicle': self.vehicle.to_summary() if self.vehicle else None,
            'mechanic': {'id': self.mechanic.id, 'name': self.mechanic.name} if self.mechanic else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Maintenance {self.id}: {self.description} [{self.status}]>'
