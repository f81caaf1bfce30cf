from wtforms import StringField, IntegerField, SelectField, DateTimeField
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange, Optional, ValidationError

from models.enums import ReminderType, enum_values
from utils.forms import JsonForm, JsonBooleanField, DATETIME_FORMATS


class ReminderForm(JsonForm):
    vehicle_id = IntegerField('Vehicle', validators=[InputRequired()])
    description = StringField('Description', validators=[DataRequired(), Length(max=255)])
    type = SelectField('Type', choices=enum_values(ReminderType), default=ReminderType.TIME_BASED.value)
    due_date = DateTimeField('Due date', format=DATETIME_FORMATS, validators=[Optional()])
    due_mileage = IntegerField('Due mileage', validators=[Optional(), NumberRange(min=0)])
    interval_days = IntegerField('Interval (days)', validators=[Optional(), NumberRange(min=1)])
    interval_mileage = IntegerField('Interval (km)', validators=[Optional(), NumberRange(min=1)])
    recurring = JsonBooleanField('Recurring', default=False)


class ReminderUpdateForm(JsonForm):
    description = StringField('Description', validators=[Optional(), Length(max=255)])
    type = SelectField('Type', choices=enum_values(ReminderType), validators=[Optional()],
                       validate_choice=False)
    due_date = DateTimeField('Due date', format=DATETIME_FORMATS, validators=[Optional()])
    due_mileage = IntegerField('Due mileage', validators=[Optional(), NumberRange(min=0)])
    interval_days = IntegerField('Interval (days)', validators=[Optional(), NumberRange(min=1)])
    interval_mileage = IntegerField('Interval (km)', validators=[Optional(), NumberRange(min=1)])
    recurring = JsonBooleanField('Recurring')
    completed = JsonBooleanField('Completed')

    def validate_type(self, field):
        if field.data not in enum_values(ReminderType):
            raise ValidationError('Not a valid reminder type')


class SmartReminderForm(JsonForm):
    vehicle_id = IntegerField('Vehicle', validators=[InputRequired()])
    reminder_type = StringField('Reminder type', validators=[DataRequired()])


class MileageUpdateForm(JsonForm):
    vehicle_id = IntegerField('Vehicle', validators=[InputRequired()])
    mileage = IntegerField('Mileage', validators=[
        NumberRange(min=0, message='Mileage is required and must be >= 0')
    ])
    notes = StringField('Notes', validators=[Optional(), Length(max=255)])


class MileageReminderForm(JsonForm):
    vehicle_id = IntegerField('Vehicle', validators=[InputRequired()])
    description = StringField('Description', validators=[DataRequired(), Length(max=255)])
    due_mileage = IntegerField('Due mileage', validators=[
        NumberRange(min=0, message='Due mileage is required and must be >= 0')
    ])
    interval_mileage = IntegerField('Interval (km)', validators=[Optional(), NumberRange(min=1)])
    recurring = JsonBooleanField('Recurring', default=False)
