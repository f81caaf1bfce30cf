from wtforms import StringField, IntegerField, DateTimeField, DecimalField
from wtforms.validators import DataRequired, InputRequired, Length, Optional, ValidationError

from models.enums import ExpenseCategory
from utils.forms import JsonForm, DATETIME_FORMATS


def _check_category(form, field):
    if field.data and field.data.upper() not in ExpenseCategory.ALL:
        raise ValidationError(f'Must be one of: {", ".join(ExpenseCategory.ALL)}')


class ExpenseForm(JsonForm):
    vehicle_id = IntegerField('Vehicle', validators=[InputRequired()])
    description = StringField('Description', validators=[DataRequired(), Length(max=255)])
    category = StringField('Category', validators=[Optional(), _check_category],
                           default=ExpenseCategory.OTHER)
    amount = DecimalField('Amount', places=2, validators=[InputRequired()])
    date = DateTimeField('Date', format=DATETIME_FORMATS, validators=[Optional()])


class ExpenseUpdateForm(JsonForm):
    description = StringField('Description', validators=[Optional(), Length(max=255)])
    category = StringField('Category', validators=[Optional(), _check_category])
    amount = DecimalField('Amount', places=2, validators=[Optional()])
    date = DateTimeField('Date', format=DATETIME_FORMATS, validators=[Optional()])
