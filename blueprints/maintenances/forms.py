from wtforms import StringField, IntegerField, SelectField, DateTimeField, DecimalField, TextAreaField
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange, Optional, ValidationError

from models.enums import MaintenanceStatus, MaintenanceType, enum_values
from utils.forms import JsonForm, DATETIME_FORMATS


class MaintenanceForm(JsonForm):
    vehicle_id = IntegerField('Vehicle', validators=[InputRequired()])
    mechanic_id = IntegerField('Mechanic', validators=[Optional()])
    type = SelectField('Type', choices=enum_values(MaintenanceType), default=MaintenanceType.PREVENTIVE.value)
    status = SelectField('Status', choices=enum_values(MaintenanceStatus),
                         default=MaintenanceStatus.SCHEDULED.value)
    description = StringField('Description', validators=[DataRequired(), Length(max=255)])
    scheduled_date = DateTimeField('Scheduled date', format=DATETIME_FORMATS, validators=[InputRequired()])
    completed_date = DateTimeField('Completed date', format=DATETIME_FORMATS, validators=[Optional()])
    cost = DecimalField('Cost', places=2, validators=[Optional(), NumberRange(min=0)])
    notes = TextAreaField('Notes', validators=[Optional()])


class MaintenanceUpdateForm(JsonForm):
    """Partial update; only keys present in the body are applied."""
    mechanic_id = IntegerField('Mechanic', validators=[Optional()])
    type = SelectField('Type', choices=enum_values(MaintenanceType), validators=[Optional()],
                       validate_choice=False)
    status = SelectField('Status', choices=enum_values(MaintenanceStatus), validators=[Optional()],
                         validate_choice=False)
    description = StringField('Description', validators=[Optional(), Length(max=255)])
    scheduled_date = DateTimeField('Scheduled date', format=DATETIME_FORMATS, validators=[Optional()])
    completed_date = DateTimeField('Completed date', format=DATETIME_FORMATS, validators=[Optional()])
    cost = DecimalField('Cost', places=2, validators=[Optional(), NumberRange(min=0)])
    notes = TextAreaField('Notes', validators=[Optional()])

    def validate_type(self, field):
        if field.data not in enum_values(MaintenanceType):
            raise ValidationError('Not a valid maintenance type')

    def validate_status(self, field):
        if field.data not in enum_values(MaintenanceStatus):
            raise ValidationError('Not a valid maintenance status')
