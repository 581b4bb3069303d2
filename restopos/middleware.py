"""Middleware for bearer-token authentication and tenant store context."""
from functools import wraps

from flask import g, request, current_app

from restopos.database import get_session
from restopos.exceptions import AuthenticationError, UnauthorizedError
from restopos.services.auth_service import decode_token
from restopos.services.tenant_service import ensure_tenant_active
from restopos.tenant_db import get_tenant_stores


def load_principal():
    """
    Load the principal from the Authorization header into g.

    Sets g.principal (or None) and g.auth_error when a token was sent but
    could not be decoded. Errors are raised later by require_auth, so
    public endpoints keep working with a stale token.
    """
    g.principal = None
    g.auth_error = None
    g.tenant_code = None
    g.tenant_session = None

    header = request.headers.get('Authorization', '')
    if not header.startswith('Bearer '):
        return

    token = header[len('Bearer '):].strip()
    try:
        g.principal = decode_token(token, current_app.config['JWT_SECRET'])
    except AuthenticationError as e:
        g.auth_error = e


def require_auth(f):
    """
    Decorator: Require a valid bearer token.

    Raises AuthenticationError (401) when the token is missing, expired or
    invalid.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('principal') is None:
            raise g.get('auth_error') or AuthenticationError()
        return f(*args, **kwargs)
    return decorated_function


def require_tenant(f):
    """
    Decorator: Bind the principal's tenant store session to g.tenant_session.

    Must be used AFTER require_auth. The tenant's directory status is checked
    on every request, so a deactivation takes effect immediately.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        tenant_code = g.principal.get('tenant_code')
        if not tenant_code:
            raise UnauthorizedError('A tenant account is required for this action')

        ensure_tenant_active(get_session(), tenant_code)
        g.tenant_session = get_tenant_stores().open_session(tenant_code)
        g.tenant_code = tenant_code
        return f(*args, **kwargs)
    return decorated_function


def get_tenant_session():
    """Get the tenant store session bound to the current request."""
    return g.tenant_session


def close_tenant_session(exception=None):
    """Close the request's tenant session, rolling back on failure."""
    session = g.pop('tenant_session', None)
    if session is None:
        return
    if exception is not None:
        session.rollback()
    session.close()
