# Models package - Import all models for Flask-SQLAlchemy

from models.users import User
from models.settings import UserSettings
from models.vehicles import Vehicle
from models.maintenance import Maintenance
from models.expenses import Expense
from models.reminders import Reminder
from models.notifications import Notification
from models.mileage_records import MileageRecord
from models.predictions import Prediction
from models.reports import Report
from models.push_subscriptions import PushSubscription

__all__ = [
    'User',
    'UserSettings',
    'Vehicle',
    'Maintenance',
    'Expense',
    'Reminder',
    'Notification',
    'MileageRecord',
    'Prediction',
    'Report',
    'PushSubscription',
]
