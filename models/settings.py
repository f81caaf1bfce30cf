from extensions import db
from datetime import datetime
import copy


DEFAULT_CHANNELS = {
    'in_app': True,
    'email': True,
}

DEFAULT_CATEGORIES = {
    'maintenance': {'in_app': True, 'email': True},
    'expenses': {'in_app': True, 'email': True},
    'reminders': {'in_app': True, 'email': True},
    'system': {'in_app': True, 'email': False},
}

DEFAULT_ADVANCED_SETTINGS = {
    'maintenance_reminder_days': 7,
    'mileage_alert_threshold': 1000,
    'monthly_expense_limit': None,  # no limit until the user sets one
}


class UserSettings(db.Model):
    """Per-user notification preferences"""
    __tablename__ = 'user_settings'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True)
    channels = db.Column(db.JSON, nullable=False, default=lambda: copy.deepcopy(DEFAULT_CHANNELS))
    categories = db.Column(db.JSON, nullable=False, default=lambda: copy.deepcopy(DEFAULT_CATEGORIES))
    advanced_settings = db.Column(db.JSON, nullable=False,
                                  default=lambda: copy.deepcopy(DEFAULT_ADVANCED_SETTINGS))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship('User', back_populates='settings')

    @classmethod
    def with_defaults(cls, user_id):
        return cls(
            user_id=user_id,
            channels=copy.deepcopy(DEFAULT_CHANNELS),
            categories=copy.deepcopy(DEFAULT_CATEGORIES),
            advanced_settings=copy.deepcopy(DEFAULT_ADVANCED_SETTINGS),
        )

    def channel_enabled(self, channel_key):
        """Missing keys count as enabled."""
        return (self.channels or {}).get(channel_key, True) is not False

    def category_enabled(self, category, channel_key):
        per_category = (self.categories or {}).get(category) or {}
        return per_category.get(channel_key, True) is not False

    def get_advanced(self, key):
        """Advanced setting value, falling back to the built-in default."""
        value = (self.advanced_settings or {}).get(key)
        if value is None:
            return DEFAULT_ADVANCED_SETTINGS.get(key)
        return value

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'channels': self.channels,
            'categories': self.categories,
            'advanced_settings': self.advanced_settings,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<UserSettings user={self.user_id}>'
