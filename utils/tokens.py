"""
Bearer tokens.

Access and refresh tokens are HS256 JWTs signed with separate secrets and
tagged with a ``type`` claim so one can never stand in for the other.
"""
import secrets
from datetime import datetime, timezone

import jwt
from flask import current_app


def _encode(claims, secret, lifetime, token_type):
    now = datetime.now(timezone.utc)
    payload = dict(claims)
    payload.update({'iat': now, 'exp': now + lifetime, 'type': token_type})
    if token_type == 'refresh':
        payload['jti'] = secrets.token_hex(16)
    return jwt.encode(payload, secret, algorithm=current_app.config['JWT_ALGORITHM'])


def create_access_token(user):
    return _encode(
        {'sub': str(user.id), 'email': user.email, 'role': user.role},
        current_app.config['JWT_SECRET_KEY'],
        current_app.config['JWT_ACCESS_TOKEN_EXPIRES'],
        'access',
    )


def create_refresh_token(user):
    return _encode(
        {'sub': str(user.id)},
        current_app.config['JWT_REFRESH_SECRET_KEY'],
        current_app.config['JWT_REFRESH_TOKEN_EXPIRES'],
        'refresh',
    )


def create_token_pair(user):
    return create_access_token(user), create_refresh_token(user)


def _decode(token, secret, token_type):
    try:
        payload = jwt.decode(token, secret, algorithms=[current_app.config['JWT_ALGORITHM']])
    except jwt.PyJWTError as e:
        current_app.logger.debug(f"Rejected {token_type} token: {e}")
        return None
    if payload.get('type') != token_type:
        current_app.logger.debug(f"Token is not a {token_type} token")
        return None
    return payload


def decode_access_token(token):
    return _decode(token, current_app.config['JWT_SECRET_KEY'], 'access')


def decode_refresh_token(token):
    return _decode(token, current_app.config['JWT_REFRESH_SECRET_KEY'], 'refresh')


def bearer_token(request):
    """Token from an ``Authorization: Bearer ...`` header, or None."""
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()
