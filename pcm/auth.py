"""
Bearer-token authentication for the PCM API.

Use the @require_auth decorator on tenant endpoints. It validates the token
with the application's identity provider and sets g.current_user with the
manager email and the tenant id the token was issued for.
"""
import logging
from functools import wraps
from typing import Any, Dict, Optional

from flask import current_app, g, jsonify, request

from pcm.identity import IdentityError

logger = logging.getLogger(__name__)


def get_token_from_header() -> Optional[str]:
    """Extract the token from the Authorization header."""
    auth_header = request.headers.get('Authorization', '')
    if auth_header.startswith('Bearer '):
        return auth_header[7:]
    return None


def _unauthorized(message: str):
    return jsonify({
        'error': {
            'code': 'UNAUTHORIZED',
            'message': message
        }
    }), 401


def require_auth(f):
    """Reject the request unless it carries a valid, unrevoked token."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = get_token_from_header()
        if not token:
            return _unauthorized('Authentication required. Provide a valid Bearer token.')

        identity = current_app.extensions['pcm.identity']
        try:
            payload = identity.verify_token(token)
        except IdentityError as e:
            return _unauthorized(e.message)

        tenant_id = payload.get('tenant_id')
        if not tenant_id:
            return _unauthorized('Token is not bound to a company')

        g.current_user = {
            'email': payload.get('sub'),
            'tenant_id': tenant_id,
            'token': token,
        }
        return f(*args, **kwargs)

    return decorated_function


def get_current_user() -> Optional[Dict[str, Any]]:
    """Get the current authenticated user from Flask's g object."""
    return getattr(g, 'current_user', None)


def get_current_tenant_id() -> str:
    return g.current_user['tenant_id']
