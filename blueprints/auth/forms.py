"""
Authentication Forms
JSON forms for registration, login and token refresh
"""
from wtforms import StringField, PasswordField, SelectField
from wtforms.validators import DataRequired, Email, Length, Optional, ValidationError
import re

from models.enums import UserRole
from utils.forms import JsonForm


class LoginForm(JsonForm):
    email = StringField('Email', validators=[
        DataRequired(message='Email is required'),
        Email(message='Invalid email address')
    ])
    password = PasswordField('Password', validators=[
        DataRequired(message='Password is required')
    ])


class RegisterForm(JsonForm):
    name = StringField('Name', validators=[
        DataRequired(message='Your name is required'),
        Length(min=2, max=100, message='Name must be between 2 and 100 characters')
    ])
    email = StringField('Email', validators=[
        DataRequired(message='Email is required'),
        Email(message='Invalid email address')
    ])
    password = PasswordField('Password', validators=[
        DataRequired(message='Password is required')
    ])
    phone = StringField('Phone', validators=[Optional(), Length(max=30)])
    # Admins are only ever made from the CLI
    role = SelectField('Role', validators=[Optional()],
                       choices=[UserRole.OWNER.value, UserRole.MECHANIC.value],
                       default=UserRole.OWNER.value)

    def validate_password(self, field):
        is_valid, message = validate_password_strength(field.data or '')
        if not is_valid:
            raise ValidationError(message)


class RefreshForm(JsonForm):
    refresh_token = StringField('Refresh token', validators=[
        DataRequired(message='Refresh token is required')
    ])


def validate_password_strength(password):
    """
    Validate password meets security requirements
    Returns: (is_valid, error_message)
    """
    from flask import current_app

    min_length = current_app.config.get('PASSWORD_MIN_LENGTH', 8)
    require_letter = current_app.config.get('PASSWORD_REQUIRE_LETTER', True)
    require_digit = current_app.config.get('PASSWORD_REQUIRE_DIGIT', True)

    errors = []

    if len(password) < min_length:
        errors.append(f"at least {min_length} characters")

    if require_letter and not re.search(r'[A-Za-z]', password):
        errors.append("a letter")

    if require_digit and not re.search(r'\d', password):
        errors.append("a number")

    if errors:
        return False, f"Password must contain {', '.join(errors)}"

    return True, None
