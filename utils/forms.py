"""
Flask-WTF helpers for validating JSON request bodies.

FlaskForm already reads ``request.get_json()`` for JSON requests; the forms
here only switch CSRF off (the API authenticates with bearer tokens) and turn
validation failures into ``ValidationError``.
"""
from flask import request
from flask_wtf import FlaskForm
from werkzeug.datastructures import ImmutableMultiDict
from wtforms import BooleanField

from services.exceptions import ValidationError

DATETIME_FORMATS = ['%Y-%m-%dT%H:%M:%S', '%Y-%m-%dT%H:%M:%S.%f', '%Y-%m-%dT%H:%M', '%Y-%m-%d']


class JsonForm(FlaskForm):
    class Meta:
        csrf = False

        def wrap_formdata(self, form, formdata):
            formdata = super().wrap_formdata(form, formdata)
            if formdata is None or not request.is_json:
                return formdata
            # JSON null means "no value"; WTForms fields choke on None
            return ImmutableMultiDict(
                [(key, value) for key, value in formdata.items(multi=True) if value is not None]
            )


class JsonBooleanField(BooleanField):
    """BooleanField that understands JSON ``false``."""
    false_values = (False, 'false', 'False', '', '0', 0)


def validate_json(form_cls):
    """Build *form_cls* from the request body and validate it, or raise ValidationError."""
    form = form_cls()
    if not form.validate():
        raise ValidationError('Invalid request data', errors=form.errors)
    return form


def submitted_data(form):
    """Field data for the keys actually present in the JSON body."""
    body = request.get_json(silent=True) or {}
    return {name: field.data for name, field in form._fields.items() if name in body}


def enum_arg(name, enum_cls):
    """Optional query-string value restricted to *enum_cls* values."""
    value = request.args.get(name)
    if not value:
        return None
    allowed = [member.value for member in enum_cls]
    if value not in allowed:
        raise ValidationError(f'Invalid {name}', errors={name: [f'Must be one of: {", ".join(allowed)}']})
    return value


def bool_arg(name):
    """``?name=true`` / ``?name=false`` as a bool, None when absent."""
    value = request.args.get(name)
    if value is None or value == '':
        return None
    return value.strip().lower() in ('1', 'true', 'yes')
