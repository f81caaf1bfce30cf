from extensions import db
from datetime import datetime


class Expense(db.Model):
    __tablename__ = 'expenses'

    id = db.Column(db.Integer, primary_key=True)
    vehicle_id = db.Column(db.Integer, db.ForeignKey('vehicles.id', ondelete='CASCADE'), nullable=False, index=True)
    description = db.Column(db.String(255), nullable=False)  # Oil change, Full tank, IPVA
    category = db.Column(db.String(50), nullable=False, index=True)  # MAINTENANCE, FUEL, ...
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    date = db.Column(db.DateTime, nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    vehicle = db.relationship('Vehicle', back_populates='expenses')

    def to_dict(self):
        return {
            'id': self.id,
            'vehicle_id': self.vehicle_id,
            'description': self.description,
            'category': self.category,
            'amount': float(self.amount) if self.amount is not None else None,
            'date': self.date.isoformat() if self.date else None,
            'vehicle': self.vehicle.to_summary() if self.vehicle else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Expense {self.date}: {self.description} - {self.amount}>'
