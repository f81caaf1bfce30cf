from extensions import db
from datetime import datetime

from models.enums import NotificationChannel, NotificationCategory


class Notification(db.Model):
    __tablename__ = 'notifications'
    __table_args__ = (
        db.Index('ix_notifications_user_read', 'user_id', 'read'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    type = db.Column(db.String(40), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    data = db.Column(db.JSON)  # correlation ids (vehicle_id, reminder_id, ...)
    read = db.Column(db.Boolean, nullable=False, default=False)
    channel = db.Column(db.String(20), nullable=False, default=NotificationChannel.IN_APP.value)
    category = db.Column(db.String(30), nullable=False, default=NotificationCategory.SYSTEM.value)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    user = db.relationship('User', back_populates='notifications')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'type': self.type,
            'title': self.title,
            'message': self.message,
            'data': self.data,
            'read': self.read,
            'channel': self.channel,
            'category': self.category,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Notification {self.id} {self.type} -> user {self.user_id}>'
