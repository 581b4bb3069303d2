"""
Tenant directory service.

Handles tenant provisioning (directory record plus store file), status
changes, and the one-time activation on the owner's first login.
"""
import secrets
import string
import logging
from datetime import datetime

from sqlalchemy import update, or_
from sqlalchemy.exc import IntegrityError

from restopos.exceptions import (
    PosError, BusinessLogicError, NotFoundError, TenantNotFoundError, TenantInactiveError
)
from restopos.models import Tenant, TenantStatus
from restopos.services.settings_service import seed_default_settings
from restopos.tenant_db import validate_tenant_code

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 6
REQUIRED_FIELDS = ('restaurant_name', 'owner_name', 'owner_email', 'username', 'password')


def generate_tenant_code(directory_session, attempts=10) -> str:
    """Generate an unused 6-character uppercase code."""
    for _ in range(attempts):
        code = ''.join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
        if not directory_session.query(Tenant.id).filter(Tenant.tenant_code == code).first():
            return code
    raise BusinessLogicError('Could not generate a unique tenant code')


def normalize_tenant_code(tenant_code) -> str:
    return validate_tenant_code((tenant_code or '').strip().upper())


def get_tenant_by_code(directory_session, tenant_code) -> Tenant:
    """
    Raises:
        TenantNotFoundError: no tenant with this code
    """
    code = (tenant_code or '').strip().upper()
    tenant = directory_session.query(Tenant).filter(Tenant.tenant_code == code).first()
    if not tenant:
        raise TenantNotFoundError(code)
    return tenant


def get_tenant(directory_session, tenant_id: int) -> Tenant:
    tenant = directory_session.get(Tenant, tenant_id)
    if not tenant:
        raise NotFoundError(f'Tenant {tenant_id} not found')
    return tenant


def ensure_tenant_active(directory_session, tenant_code) -> Tenant:
    """
    Return the tenant when it may serve requests.

    Raises:
        TenantNotFoundError: unknown code
        TenantInactiveError: tenant exists but is not active
    """
    tenant = get_tenant_by_code(directory_session, tenant_code)
    if not tenant.is_active:
        raise TenantInactiveError(tenant.tenant_code)
    return tenant


def activate_on_first_login(directory_session, tenant: Tenant) -> bool:
    """
    Flip a pending tenant to active and stamp activated_at.

    A single conditional UPDATE, so concurrent first logins activate the
    tenant exactly once. A tenant deactivated after use keeps its
    activated_at and is never matched.

    Returns:
        True when this call performed the activation
    """
    try:
        result = directory_session.execute(
            update(Tenant)
            .where(
                Tenant.id == tenant.id,
                Tenant.status == TenantStatus.INACTIVE,
                Tenant.activated_at.is_(None),
            )
            .values(status=TenantStatus.ACTIVE, activated_at=datetime.now())
            .execution_options(synchronize_session=False)
        )
        directory_session.commit()
    except Exception:
        directory_session.rollback()
        raise

    directory_session.refresh(tenant)
    activated = result.rowcount == 1
    if activated:
        logger.info(f"Tenant {tenant.tenant_code} activated on first owner login")
    return activated


def list_tenants(directory_session, status=None, search=None):
    query = directory_session.query(Tenant)
    if status:
        if status not in TenantStatus.ALL:
            raise BusinessLogicError(f"status must be one of {', '.join(TenantStatus.ALL)}")
        query = query.filter(Tenant.status == status)
    if search:
        term = f'%{search.strip()}%'
        query = query.filter(or_(
            Tenant.tenant_code.ilike(term),
            Tenant.restaurant_name.ilike(term),
            Tenant.owner_name.ilike(term),
            Tenant.owner_email.ilike(term),
        ))
    return query.order_by(Tenant.created_at.desc(), Tenant.id.desc()).all()


def create_tenant(directory_session, stores, data: dict) -> Tenant:
    """
    Provision a tenant: directory record, store file with the current schema,
    and default settings.

    The store file is removed again if anything after its creation fails.

    Raises:
        BusinessLogicError: missing fields, invalid status or code, duplicates
    """
    missing = [field for field in REQUIRED_FIELDS if not (data.get(field) or '').strip()]
    if missing:
        raise BusinessLogicError('Missing required fields', payload={'fields': missing})

    status = data.get('status') or TenantStatus.INACTIVE
    if status not in TenantStatus.ALL:
        raise BusinessLogicError(f"status must be one of {', '.join(TenantStatus.ALL)}")

    if data.get('tenant_code'):
        tenant_code = normalize_tenant_code(data['tenant_code'])
    else:
        tenant_code = generate_tenant_code(directory_session)

    duplicate = directory_session.query(Tenant).filter(or_(
        Tenant.tenant_code == tenant_code,
        Tenant.username == data['username'].strip(),
        Tenant.owner_email == data['owner_email'].strip(),
    )).first()
    if duplicate:
        raise BusinessLogicError('Tenant code, username, or owner email already exists')
    if stores.exists(tenant_code):
        raise BusinessLogicError(f'A store file for {tenant_code} already exists')

    tenant = Tenant(
        tenant_code=tenant_code,
        restaurant_name=data['restaurant_name'].strip(),
        owner_name=data['owner_name'].strip(),
        owner_email=data['owner_email'].strip(),
        owner_phone=data.get('owner_phone') or None,
        username=data['username'].strip(),
        status=status,
        activated_at=datetime.now() if status == TenantStatus.ACTIVE else None,
    )
    tenant.set_password(data['password'])

    store_created = False
    try:
        directory_session.add(tenant)
        directory_session.flush()

        stores.create_store(tenant_code)
        store_created = True
        store_session = stores.open_session(tenant_code)
        try:
            seed_default_settings(store_session, restaurant_name=tenant.restaurant_name)
        finally:
            store_session.close()

        directory_session.commit()
    except IntegrityError:
        directory_session.rollback()
        if store_created:
            stores.delete_store(tenant_code)
        raise BusinessLogicError('Tenant code, username, or owner email already exists')
    except Exception:
        directory_session.rollback()
        if store_created:
            stores.delete_store(tenant_code)
        logger.exception(f"Provisioning failed for tenant {tenant_code}")
        raise

    logger.info(f"Provisioned tenant {tenant_code} ({tenant.restaurant_name}) with status {status}")
    return tenant


def update_tenant(directory_session, stores, tenant_id: int, data: dict) -> Tenant:
    """
    Update names, contact, credentials or status.

    Setting a never-activated tenant active stamps activated_at. Any status
    change evicts the cached store.
    """
    tenant = get_tenant(directory_session, tenant_id)
    previous_status = tenant.status

    try:
        for field in ('restaurant_name', 'owner_name', 'owner_email', 'username'):
            if field in data:
                value = (data.get(field) or '').strip()
                if not value:
                    raise BusinessLogicError(f'{field} cannot be empty')
                setattr(tenant, field, value)
        if 'owner_phone' in data:
            tenant.owner_phone = data.get('owner_phone') or None
        if data.get('password'):
            tenant.set_password(data['password'])
        if 'status' in data:
            status = data.get('status')
            if status not in TenantStatus.ALL:
                raise BusinessLogicError(f"status must be one of {', '.join(TenantStatus.ALL)}")
            tenant.status = status
            if status == TenantStatus.ACTIVE and tenant.activated_at is None:
                tenant.activated_at = datetime.now()

        directory_session.commit()
    except IntegrityError:
        directory_session.rollback()
        raise BusinessLogicError('Username or owner email already exists')
    except PosError:
        directory_session.rollback()
        raise

    if tenant.status != previous_status:
        stores.evict(tenant.tenant_code)
        logger.info(f"Tenant {tenant.tenant_code} status {previous_status} -> {tenant.status}")
    return tenant


def delete_tenant(directory_session, stores, tenant_id: int) -> None:
    """Remove the directory record and the tenant's store file."""
    tenant = get_tenant(directory_session, tenant_id)
    tenant_code = tenant.tenant_code
    try:
        directory_session.delete(tenant)
        directory_session.commit()
    except Exception:
        directory_session.rollback()
        raise
    stores.delete_store(tenant_code)
    logger.info(f"Deleted tenant {tenant_code}")
