"""
Closed value sets shared by models, services and request forms.

Every enum subclasses ``str`` so members compare equal to the raw strings
stored in the database and sent over JSON.
"""
import enum


class UserRole(str, enum.Enum):
    OWNER = 'OWNER'
    MECHANIC = 'MECHANIC'
    ADMIN = 'ADMIN'


class VehicleType(str, enum.Enum):
    CAR = 'CAR'
    MOTORCYCLE = 'MOTORCYCLE'
    TRUCK = 'TRUCK'
    VAN = 'VAN'


class MaintenanceType(str, enum.Enum):
    PREVENTIVE = 'PREVENTIVE'
    CORRECTIVE = 'CORRECTIVE'
    INSPECTION = 'INSPECTION'


class MaintenanceStatus(str, enum.Enum):
    SCHEDULED = 'SCHEDULED'
    IN_PROGRESS = 'IN_PROGRESS'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'


class ReminderType(str, enum.Enum):
    TIME_BASED = 'TIME_BASED'
    MILEAGE_BASED = 'MILEAGE_BASED'
    HYBRID = 'HYBRID'


# Reminder types evaluated against a calendar date / an odometer reading
DATE_REMINDER_TYPES = (ReminderType.TIME_BASED, ReminderType.HYBRID)
MILEAGE_REMINDER_TYPES = (ReminderType.MILEAGE_BASED, ReminderType.HYBRID)


class NotificationChannel(str, enum.Enum):
    IN_APP = 'IN_APP'
    EMAIL = 'EMAIL'
    PUSH = 'PUSH'

    @property
    def settings_key(self):
        """Key used for this channel inside UserSettings JSON."""
        return self.value.lower()


class NotificationCategory(str, enum.Enum):
    MAINTENANCE = 'maintenance'
    EXPENSES = 'expenses'
    REMINDERS = 'reminders'
    SYSTEM = 'system'


class NotificationType(str, enum.Enum):
    MAINTENANCE_SCHEDULED = 'MAINTENANCE_SCHEDULED'
    MAINTENANCE_COMPLETED = 'MAINTENANCE_COMPLETED'
    MAINTENANCE_DUE = 'MAINTENANCE_DUE'
    REMINDER_CREATED = 'REMINDER_CREATED'
    REMINDER_DUE = 'REMINDER_DUE'
    REMINDER_COMPLETED = 'REMINDER_COMPLETED'
    MILEAGE_ALERT = 'MILEAGE_ALERT'
    EXPENSE_LIMIT = 'EXPENSE_LIMIT'
    SYSTEM_UPDATE = 'SYSTEM_UPDATE'


class ExpenseCategory:
    """Known expense categories.  The column itself is free text."""
    MAINTENANCE = 'MAINTENANCE'
    FUEL = 'FUEL'
    INSURANCE = 'INSURANCE'
    TAX = 'TAX'
    PARTS = 'PARTS'
    CLEANING = 'CLEANING'
    PARKING = 'PARKING'
    OTHER = 'OTHER'

    ALL = (MAINTENANCE, FUEL, INSURANCE, TAX, PARTS, CLEANING, PARKING, OTHER)


def enum_values(enum_cls):
    """List of raw values, handy for ``db.Enum`` and form choices."""
    return [member.value for member in enum_cls]
