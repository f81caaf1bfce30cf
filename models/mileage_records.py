from extensions import db
from datetime import datetime


class MileageRecord(db.Model):
    """Append-only odometer history"""
    __tablename__ = 'mileage_records'

    id = db.Column(db.Integer, primary_key=True)
    vehicle_id = db.Column(db.Integer, db.ForeignKey('vehicles.id', ondelete='CASCADE'), nullable=False, index=True)
    mileage = db.Column(db.Integer, nullable=False)
    date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    notes = db.Column(db.String(255))

    vehicle = db.relationship('Vehicle', back_populates='mileage_records')

    def to_dict(self):
        return {
            'id': self.id,
            'vehicle_id': self.vehicle_id,
            'mileage': self.mileage,
            'date': self.date.isoformat() if self.date else None,
            'notes': self.notes,
        }

    def __repr__(self):
        return f'<MileageRecord vehicle={self.vehicle_id} {self.mileage}km>'
