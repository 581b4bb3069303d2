"""
Permission decorators for role-based access control.
Extend require_auth and require_tenant with role checks.
"""

from functools import wraps
from flask import g

from restopos.exceptions import AuthenticationError, UnauthorizedError


def require_role(*allowed_roles):
    """
    Decorator to restrict access to specific roles.

    Usage:
        @require_role('admin')
        @require_role('admin', 'cashier')

    Must be used AFTER require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            principal = g.get('principal')
            if principal is None:
                raise AuthenticationError()

            if principal.get('role') not in allowed_roles:
                raise UnauthorizedError('You do not have permission to perform this action')

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def super_admin_required(f):
    """Decorator: only platform super-admins (no tenant)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        principal = g.get('principal')
        if principal is None:
            raise g.get('auth_error') or AuthenticationError()
        if principal.get('role') != 'super_admin':
            raise UnauthorizedError('Super admin access required')
        return f(*args, **kwargs)
    return decorated_function
