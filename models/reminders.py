from extensions import db
from datetime import datetime

from models.enums import ReminderType, DATE_REMINDER_TYPES, MILEAGE_REMINDER_TYPES


class Reminder(db.Model):
    """
    A prompt tied to a vehicle, due on a date, at an odometer reading, or both.

    Rows are append-only history: completing a recurring reminder inserts a
    fresh row for the next occurrence and the completed one stays completed.
    """
    __tablename__ = 'reminders'

    id = db.Column(db.Integer, primary_key=True)
    vehicle_id = db.Column(db.Integer, db.ForeignKey('vehicles.id', ondelete='CASCADE'), nullable=False, index=True)
    description = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(20), nullable=False, default=ReminderType.TIME_BASED.value)

    due_date = db.Column(db.DateTime)  # TIME_BASED / HYBRID
    due_mileage = db.Column(db.Integer)  # MILEAGE_BASED / HYBRID

    # Only used when recurring=True to compute the next instance
    interval_days = db.Column(db.Integer)
    interval_mileage = db.Column(db.Integer)
    recurring = db.Column(db.Boolean, nullable=False, default=False)

    completed = db.Column(db.Boolean, nullable=False, default=False, index=True)
    last_notified = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    vehicle = db.relationship('Vehicle', back_populates='reminders')

    @property
    def is_date_based(self):
        return self.type in DATE_REMINDER_TYPES

    @property
    def is_mileage_based(self):
        return self.type in MILEAGE_REMINDER_TYPES

    def to_dict(self):
        return {
            'id': self.id,
            'vehicle_id': self.vehicle_id,
            'description': self.description,
            'type': self.type,
            'due_date': self.due_date.isoformat() if self.due_date else None,
            'due_mileage': self.due_mileage,
            'interval_days': self.interval_days,
            'interval_mileage': self.interval_mileage,
            'recurring': self.recurring,
            'completed': self.completed,
            'last_notified': self.last_notified.isoformat() if self.last_notified else None,
            'vehicle': self.vehicle.to_summary() if self.vehicle else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Reminder {self.id}: {self.description} [{self.type}]>'
