from extensions import db
from datetime import datetime, timezone

from models.enums import VehicleType


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Vehicle(db.Model):
    __tablename__ = 'vehicles'
    __table_args__ = (
        db.UniqueConstraint('owner_id', 'license_plate', name='uq_vehicles_owner_plate'),
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    brand = db.Column(db.String(50), nullable=False)  # Toyota, Honda
    model = db.Column(db.String(50), nullable=False)  # Corolla, Civic
    year = db.Column(db.Integer, nullable=False)
    license_plate = db.Column(db.String(20), nullable=False)  # stored upper-case
    type = db.Column(db.String(20), nullable=False, default=VehicleType.CAR.value)
    color = db.Column(db.String(30))
    mileage = db.Column(db.Integer, nullable=False, default=0)  # current odometer (km)
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    # Relationships
    owner = db.relationship('User', back_populates='vehicles')
    maintenances = db.relationship('Maintenance', back_populates='vehicle', lazy=True,
                                   cascade='all, delete-orphan')
    expenses = db.relationship('Expense', back_populates='vehicle', lazy=True,
                               cascade='all, delete-orphan')
    reminders = db.relationship('Reminder', back_populates='vehicle', lazy=True,
                                cascade='all, delete-orphan')
    mileage_records = db.relationship('MileageRecord', back_populates='vehicle', lazy=True,
                                      cascade='all, delete-orphan')
    predictions = db.relationship('Prediction', back_populates='vehicle', lazy=True,
                                  cascade='all, delete-orphan')

    @property
    def display_name(self):
        return f'{self.brand} {self.model}'

    def age_in_years(self, today=None):
        """Whole calendar years since the model year."""
        today = today or _utcnow()
        return max(0, today.year - self.year)

    def to_summary(self):
        """Compact representation embedded in child records."""
        return {
            'id': self.id,
            'brand': self.brand,
            'model': self.model,
            'license_plate': self.license_plate,
        }

    def to_dict(self):
        return {
            'id': self.id,
            'owner_id': self.owner_id,
            'brand': self.brand,
            'model': self.model,
            'year': self.year,
            'license_plate': self.license_plate,
            'type': self.type,
            'color': self.color,
            'mileage': self.mileage,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<Vehicle {self.license_plate}: {self.display_name}>'
