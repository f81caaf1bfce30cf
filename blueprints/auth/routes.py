"""
Authentication Routes
Registration, login and token refresh with lockout and rate limiting
"""
from datetime import datetime
from flask import jsonify, current_app
from flask_login import login_required, current_user
from . import auth_bp
from .forms import LoginForm, RegisterForm, RefreshForm
from models.users import User
from extensions import db, limiter
from services.exceptions import AuthenticationError, ValidationError
from utils.forms import validate_json
from utils.tokens import create_token_pair, create_access_token, decode_refresh_token


def _token_response(user, status=200):
    access_token, refresh_token = create_token_pair(user)
    return jsonify({
        'user': user.to_dict(),
        'access_token': access_token,
        'refresh_token': refresh_token,
        'token_type': 'Bearer',
    }), status


@auth_bp.route('/register', methods=['POST'])
def register():
    form = validate_json(RegisterForm)
    email = form.email.data.strip().lower()

    if User.query.filter_by(email=email).first():
        raise ValidationError('Invalid request data', errors={'email': ['Email is already registered']})

    user = User(
        email=email,
        name=form.name.data.strip(),
        phone=form.phone.data or None,
        role=form.role.data or 'OWNER',
    )
    user.set_password(form.password.data)
    db.session.add(user)
    db.session.commit()
    current_app.logger.info(f"User {user.id} registered ({user.role})")

    return _token_response(user, 201)


@auth_bp.route('/login', methods=['POST'])
@limiter.limit("10 per minute")  # Rate limit login attempts
def login():
    form = validate_json(LoginForm)
    email = form.email.data.strip().lower()
    password = form.password.data

    user = User.query.filter_by(email=email).first()
    if not user:
        # Generic error to prevent user enumeration
        raise AuthenticationError()

    if user.is_locked():
        minutes_left = int((user.locked_until - datetime.utcnow()).total_seconds() / 60) + 1
        raise AuthenticationError(
            f'Account temporarily locked due to multiple failed login attempts. '
            f'Try again in {minutes_left} minutes.',
            code='account_locked',
        )

    if not user.is_active:
        raise AuthenticationError('This account has been deactivated.', code='account_inactive')

    if not user.check_password(password):
        user.record_failed_login()
        current_app.logger.warning(f"Failed login for user {user.id} ({user.failed_login_attempts} attempts)")
        if user.is_locked():
            raise AuthenticationError('Account locked due to too many failed attempts.', code='account_locked')
        raise AuthenticationError()

    user.update_last_login()
    user.reset_failed_logins()
    return _token_response(user)


@auth_bp.route('/refresh', methods=['POST'])
def refresh():
    form = validate_json(RefreshForm)
    payload = decode_refresh_token(form.refresh_token.data)
    if not payload:
        raise AuthenticationError('Invalid or expired refresh token', code='invalid_token')

    user = db.session.get(User, int(payload['sub']))
    if user is None or not user.is_active:
        raise AuthenticationError('Invalid or expired refresh token', code='invalid_token')

    return jsonify({'access_token': create_access_token(user), 'token_type': 'Bearer'})


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify({'user': current_user.to_dict()})
