"""Settings blueprint - restaurant profile, currency, VAT and receipt options."""
from flask import Blueprint, request, jsonify, current_app, Response

from restopos.database import get_session
from restopos.exceptions import BusinessLogicError, TenantNotFoundError, StoreUnavailableError
from restopos.middleware import require_auth, require_tenant, get_tenant_session
from restopos.decorators.permissions import require_role
from restopos.services.settings_service import TenantSettings, load_settings, update_settings
from restopos.services.tenant_service import get_tenant_by_code
from restopos.tenant_db import get_tenant_stores

settings_bp = Blueprint('settings', __name__, url_prefix='/api/settings')


@settings_bp.route('', methods=['GET'])
def get_settings() -> Response:
    """
    Public settings read, used by the login screen before authentication.

    Falls back to defaults when no tenant code is given or the tenant's
    store cannot be read.
    """
    tenant_code = (request.args.get('tenant_code') or '').strip()
    if not tenant_code:
        return jsonify(TenantSettings().to_dict())

    try:
        tenant = get_tenant_by_code(get_session(), tenant_code)
        session = get_tenant_stores().open_session(tenant.tenant_code)
        try:
            settings = load_settings(session)
        finally:
            session.close()
    except (BusinessLogicError, TenantNotFoundError, StoreUnavailableError) as e:
        current_app.logger.warning(f"Serving default settings for '{tenant_code}': {e}")
        settings = TenantSettings()

    return jsonify(settings.to_dict())


@settings_bp.route('', methods=['PUT'])
@require_auth
@require_tenant
@require_role('admin')
def put_settings() -> Response:
    """Validate and save a partial settings update. Unknown keys are rejected."""
    settings = update_settings(get_tenant_session(), request.get_json(silent=True) or {})
    return jsonify({'message': 'Settings updated successfully', 'settings': settings.to_dict()})
