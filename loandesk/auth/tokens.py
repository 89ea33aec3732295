import uuid
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app

from ..errors import AuthenticationError


def _jwt_secret():
    return current_app.config.get('JWT_SECRET') or current_app.config.get('SECRET_KEY', 'dev')


def create_jwt(user, expires_minutes=None):
    if expires_minutes is None:
        expires_minutes = current_app.config.get('JWT_EXPIRES_MINUTES', 60 * 24)
    now = datetime.now(timezone.utc)
    payload = {
        'sub': str(user['id']),
        'email': user.get('email'),
        'role': user.get('role'),
        'iat': int(now.timestamp()),
        'exp': int((now + timedelta(minutes=expires_minutes)).timestamp()),
        'rnd': uuid.uuid4().hex,
    }
    return jwt.encode(payload, _jwt_secret(), algorithm='HS256')


def verify_jwt(token):
    """Decode a token and return its claims, raising AuthenticationError if invalid."""
    try:
        return jwt.decode(token, _jwt_secret(), algorithms=['HS256'])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError('Session expired, please log in again')
    except jwt.InvalidTokenError as e:
        raise AuthenticationError('Not authorized, token failed', {'reason': str(e)})
