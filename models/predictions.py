from extensions import db
from datetime import datetime


class Prediction(db.Model):
    """Cached heuristic forecast for a vehicle, refreshed by the daily job"""
    __tablename__ = 'predictions'

    TYPE_EXPENSE = 'expense'
    TYPE_MAINTENANCE = 'maintenance'

    id = db.Column(db.Integer, primary_key=True)
    vehicle_id = db.Column(db.Integer, db.ForeignKey('vehicles.id', ondelete='CASCADE'), nullable=False, index=True)
    type = db.Column(db.String(20), nullable=False)  # 'expense' or 'maintenance'
    prediction = db.Column(db.JSON, nullable=False)
    confidence = db.Column(db.Float, nullable=False, default=0.0)
    valid_until = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    vehicle = db.relationship('Vehicle', back_populates='predictions')

    def is_valid(self, now=None):
        return self.valid_until >= (now or datetime.utcnow())

    def to_dict(self):
        return {
            'id': self.id,
            'vehicle_id': self.vehicle_id,
            'type': self.type,
            'prediction': self.prediction,
            'confidence': self.confidence,
            'valid_until': self.valid_until.isoformat() if self.valid_until else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Prediction {self.type} vehicle={self.vehicle_id}>'
