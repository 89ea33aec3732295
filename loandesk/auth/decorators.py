from functools import wraps
from flask import g, request, current_app

from ..db import get_supabase
from ..errors import AuthenticationError, NotFoundError
from ..roles import authorize
from .tokens import verify_jwt
from .users import UserStore


def _bearer_token():
    authz = request.headers.get('Authorization', '')
    if authz.lower().startswith('bearer '):
        return authz[7:].strip()
    return None


def login_required(view_func):
    """Resolve the bearer token to a user row and keep it on ``g.current_user``."""
    @wraps(view_func)
    def wrapper(*args, **kwargs):
        token = _bearer_token()
        if not token:
            raise AuthenticationError('Not authorized, no token')
        claims = verify_jwt(token)
        try:
            # Reload so role changes apply to tokens issued earlier
            user = UserStore(get_supabase()).get(claims.get('sub'))
        except NotFoundError:
            current_app.logger.warning(f"Token for unknown user {claims.get('sub')}")
            raise AuthenticationError('Not authorized, user not found')
        g.current_user = user
        return view_func(*args, **kwargs)
    return wrapper


def role_required(required):
    """Ensure the logged-in user satisfies a Role or Capability. Use below login_required."""
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(*args, **kwargs):
            user = g.get('current_user')
            if not user:
                raise AuthenticationError('Not authorized, no token')
            authorize(user.get('role'), required)
            return view_func(*args, **kwargs)
        return wrapper
    return decorator


def current_user():
    return g.get('current_user')
