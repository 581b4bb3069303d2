"""Authentication blueprint - token login for super-admins, owners and users."""
from flask import Blueprint, request, jsonify, current_app, g, Response

from restopos.database import get_session
from restopos.middleware import require_auth
from restopos.services.auth_service import resolve_login, issue_token
from restopos.tenant_db import get_tenant_stores

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


@auth_bp.route('/login', methods=['POST'])
def login() -> Response:
    """
    Exchange credentials for a bearer token.

    Body: {username, password, tenant_code?}. Without tenant_code the login
    is checked against the super-admins.
    """
    data = request.get_json(silent=True) or {}
    tenant_code = (data.get('tenant_code') or '').strip() or None

    principal, profile = resolve_login(
        get_session(),
        get_tenant_stores(),
        (data.get('username') or '').strip(),
        data.get('password') or '',
        tenant_code,
    )
    token = issue_token(
        principal,
        current_app.config['JWT_SECRET'],
        current_app.config.get('JWT_EXPIRES_HOURS', 24),
    )
    current_app.logger.info(f"Login: {principal['username']} role={principal['role']} tenant={principal['tenant_code']}")
    return jsonify({'token': token, 'user': profile})


@auth_bp.route('/me')
@require_auth
def me() -> Response:
    """Return the principal carried by the token."""
    return jsonify({'user': g.principal})
