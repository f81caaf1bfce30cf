from datetime import datetime
from wtforms import StringField, IntegerField, SelectField
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange, Optional, ValidationError

from models.enums import VehicleType, enum_values
from utils.forms import JsonForm


def _max_year():
    return datetime.utcnow().year + 1


class VehicleForm(JsonForm):
    brand = StringField('Brand', validators=[DataRequired(), Length(max=50)])
    model = StringField('Model', validators=[DataRequired(), Length(max=50)])
    year = IntegerField('Year', validators=[InputRequired(), NumberRange(min=1900, max=_max_year())])
    license_plate = StringField('License plate', validators=[DataRequired(), Length(min=2, max=20)])
    type = SelectField('Type', choices=enum_values(VehicleType), default=VehicleType.CAR.value)
    color = StringField('Color', validators=[Optional(), Length(max=30)])
    mileage = IntegerField('Mileage', validators=[Optional(), NumberRange(min=0)], default=0)


class VehicleUpdateForm(JsonForm):
    """Every field optional; only keys present in the body are applied."""
    brand = StringField('Brand', validators=[Optional(), Length(max=50)])
    model = StringField('Model', validators=[Optional(), Length(max=50)])
    year = IntegerField('Year', validators=[Optional(), NumberRange(min=1900, max=_max_year())])
    license_plate = StringField('License plate', validators=[Optional(), Length(min=2, max=20)])
    type = SelectField('Type', choices=enum_values(VehicleType), validators=[Optional()],
                       validate_choice=False)
    color = StringField('Color', validators=[Optional(), Length(max=30)])
    mileage = IntegerField('Mileage', validators=[Optional(), NumberRange(min=0)])

    def validate_type(self, field):
        if field.data not in enum_values(VehicleType):
            raise ValidationError('Not a valid vehicle type')


class MileageForm(JsonForm):
    mileage = IntegerField('Mileage', validators=[
        NumberRange(min=0, message='Mileage is required and must be >= 0')
    ])
    notes = StringField('Notes', validators=[Optional(), Length(max=255)])
