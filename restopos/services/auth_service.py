"""
Authentication service.

Resolves a login against the directory (super-admins, tenant owners) or a
tenant store (regular users), and issues/decodes the JWT bearer tokens that
carry the principal.
"""
import logging
from datetime import datetime, timedelta, timezone

import jwt

from restopos.exceptions import AuthenticationError, InvalidCredentialsError, TenantInactiveError
from restopos.models import SuperAdmin
from restopos.services.tenant_service import get_tenant_by_code, activate_on_first_login
from restopos.services.user_service import find_login_user

logger = logging.getLogger(__name__)

JWT_ALGORITHM = 'HS256'


def resolve_login(directory_session, stores, username, password, tenant_code=None):
    """
    Verify credentials and return ``(principal, profile)``.

    - No tenant code: super-admin lookup by username.
    - Tenant code matching the owner account: verify the password, then
      activate a pending tenant or reject an inactive one.
    - Otherwise: a store user matched by username or email; the tenant must
      be active.

    Raises:
        InvalidCredentialsError: unknown user or wrong password
        TenantNotFoundError: unknown tenant code
        TenantInactiveError: tenant exists but is not active
    """
    if not username or not password:
        raise InvalidCredentialsError('Username and password are required')

    if not tenant_code:
        admin = directory_session.query(SuperAdmin).filter(SuperAdmin.username == username).first()
        if not admin or not admin.check_password(password):
            logger.warning(f"Failed super-admin login for '{username}'")
            raise InvalidCredentialsError()
        principal = admin.to_principal()
        return principal, dict(principal, email=admin.email)

    tenant = get_tenant_by_code(directory_session, tenant_code)

    if tenant.username == username:
        if not tenant.check_password(password):
            logger.warning(f"Failed owner login for tenant {tenant.tenant_code}")
            raise InvalidCredentialsError()
        if tenant.is_pending_activation:
            activate_on_first_login(directory_session, tenant)
        if not tenant.is_active:
            raise TenantInactiveError(tenant.tenant_code)
        principal = tenant.to_principal()
        return principal, dict(principal, email=tenant.owner_email, restaurant_name=tenant.restaurant_name)

    if not tenant.is_active:
        raise TenantInactiveError(tenant.tenant_code)

    session = stores.open_session(tenant.tenant_code)
    try:
        user = find_login_user(session, username)
        if not user or not user.check_password(password):
            logger.warning(f"Failed user login for '{username}' in tenant {tenant.tenant_code}")
            raise InvalidCredentialsError()
        principal = user.to_principal(tenant.tenant_code)
        return principal, dict(principal, email=user.email, full_name=user.full_name)
    finally:
        session.close()


def issue_token(principal, secret, expires_hours=24):
    """Sign the principal into an HS256 token."""
    now = datetime.now(timezone.utc)
    claims = {
        'sub': str(principal['id']),
        'id': principal['id'],
        'username': principal['username'],
        'role': principal['role'],
        'tenant_code': principal.get('tenant_code'),
        'iat': now,
        'exp': now + timedelta(hours=expires_hours),
    }
    return jwt.encode(claims, secret, algorithm=JWT_ALGORITHM)


def decode_token(token, secret):
    """
    Decode a bearer token into a principal dict.

    Raises:
        AuthenticationError: expired, malformed or wrongly signed token
    """
    try:
        claims = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError('Token has expired')
    except jwt.InvalidTokenError:
        raise AuthenticationError('Invalid token')

    return {
        'id': claims.get('id'),
        'username': claims.get('username'),
        'role': claims.get('role'),
        'tenant_code': claims.get('tenant_code'),
    }


def ensure_super_admin(directory_session, username, password, email=None, reset_password=False):
    """
    Create the super-admin if it does not exist.

    Returns:
        (SuperAdmin, created)
    """
    admin = directory_session.query(SuperAdmin).filter(SuperAdmin.username == username).first()
    created = admin is None
    try:
        if created:
            admin = SuperAdmin(username=username, email=email)
            admin.set_password(password)
            directory_session.add(admin)
        elif reset_password:
            admin.set_password(password)
            if email:
                admin.email = email
        directory_session.commit()
    except Exception:
        directory_session.rollback()
        raise

    if created:
        logger.info(f"Created super-admin '{username}'")
    return admin, created
