from extensions import db
from datetime import datetime


class Report(db.Model):
    __tablename__ = 'reports'

    TYPE_WEEKLY_SUMMARY = 'weekly_summary'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    type = db.Column(db.String(30), nullable=False, default=TYPE_WEEKLY_SUMMARY)
    period = db.Column(db.String(20), nullable=False, default='weekly')
    data = db.Column(db.JSON, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    user = db.relationship('User', back_populates='reports')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'type': self.type,
            'period': self.period,
            'data': self.data,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
