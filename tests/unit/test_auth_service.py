"""
Unit tests for login resolution, first-login activation and tokens.
"""

import pytest

from restopos.exceptions import (
    AuthenticationError, InvalidCredentialsError, TenantInactiveError, TenantNotFoundError
)
from restopos.models import Tenant
from restopos.services.auth_service import resolve_login, issue_token, decode_token, ensure_super_admin
from restopos.services.tenant_service import create_tenant, update_tenant, activate_on_first_login
from restopos.services.user_service import create_user

SECRET = 'unit-test-secret-with-enough-length-for-hs256'


@pytest.fixture
def pending_tenant(directory_session, stores, tenant_data):
    """Tenant provisioned but never logged into."""
    return create_tenant(directory_session, stores, tenant_data('CHARLIE', status='inactive'))


class TestResolveLogin:
    """Credential resolution against the directory and tenant stores."""

    def test_super_admin(self, directory_session, stores):
        principal, profile = resolve_login(directory_session, stores, 'root', 'rootpass')
        assert principal['role'] == 'super_admin'
        assert principal['tenant_code'] is None

    def test_super_admin_bad_password(self, directory_session, stores):
        with pytest.raises(InvalidCredentialsError):
            resolve_login(directory_session, stores, 'root', 'nope')

    def test_owner(self, directory_session, stores, tenant_a):
        principal, profile = resolve_login(directory_session, stores, 'alpha_owner', 'alphapass', 'ALPHA')
        assert principal == {'id': tenant_a.id, 'username': 'alpha_owner', 'role': 'admin', 'tenant_code': 'ALPHA'}
        assert profile['restaurant_name'] == tenant_a.restaurant_name

    def test_tenant_code_is_case_insensitive(self, directory_session, stores, tenant_a):
        principal, _ = resolve_login(directory_session, stores, 'alpha_owner', 'alphapass', 'alpha')
        assert principal['tenant_code'] == 'ALPHA'

    def test_store_user_by_username_or_email(self, directory_session, stores, tenant_a, store_session):
        create_user(store_session, {'username': 'cash1', 'email': 'cash1@alpha.test', 'password': 'secret1'})

        by_name, _ = resolve_login(directory_session, stores, 'cash1', 'secret1', 'ALPHA')
        by_email, _ = resolve_login(directory_session, stores, 'cash1@alpha.test', 'secret1', 'ALPHA')
        assert by_name['role'] == 'cashier'
        assert by_name == by_email

    def test_unknown_tenant(self, directory_session, stores):
        with pytest.raises(TenantNotFoundError):
            resolve_login(directory_session, stores, 'x', 'y', 'NOPE')

    def test_wrong_password_is_not_inactive(self, directory_session, stores, tenant_a):
        with pytest.raises(InvalidCredentialsError):
            resolve_login(directory_session, stores, 'alpha_owner', 'wrong', 'ALPHA')


class TestActivationGate:
    """Pending tenants activate exactly once on the owner's first login."""

    def test_first_login_activates_once(self, directory_session, stores, pending_tenant):
        assert pending_tenant.is_pending_activation

        resolve_login(directory_session, stores, 'charlie_owner', 'charliepass', 'CHARLIE')
        tenant = directory_session.get(Tenant, pending_tenant.id)
        first_stamp = tenant.activated_at
        assert tenant.status == 'active'
        assert first_stamp is not None

        resolve_login(directory_session, stores, 'charlie_owner', 'charliepass', 'CHARLIE')
        directory_session.refresh(tenant)
        assert tenant.activated_at == first_stamp

    def test_conditional_update_only_matches_once(self, directory_session, pending_tenant):
        assert activate_on_first_login(directory_session, pending_tenant) is True
        assert activate_on_first_login(directory_session, pending_tenant) is False

    def test_failed_password_does_not_activate(self, directory_session, stores, pending_tenant):
        with pytest.raises(InvalidCredentialsError):
            resolve_login(directory_session, stores, 'charlie_owner', 'bad', 'CHARLIE')
        directory_session.refresh(pending_tenant)
        assert pending_tenant.status == 'inactive'
        assert pending_tenant.activated_at is None

    def test_store_user_cannot_activate(self, directory_session, stores, pending_tenant):
        with pytest.raises(TenantInactiveError):
            resolve_login(directory_session, stores, 'someone', 'pw', 'CHARLIE')

    def test_deactivated_tenant_stays_blocked(self, directory_session, stores, tenant_a):
        update_tenant(directory_session, stores, tenant_a.id, {'status': 'inactive'})

        with pytest.raises(TenantInactiveError):
            resolve_login(directory_session, stores, 'alpha_owner', 'alphapass', 'ALPHA')

        update_tenant(directory_session, stores, tenant_a.id, {'status': 'active'})
        principal, _ = resolve_login(directory_session, stores, 'alpha_owner', 'alphapass', 'ALPHA')
        assert principal['tenant_code'] == 'ALPHA'


class TestTokens:
    def test_round_trip(self):
        principal = {'id': 7, 'username': 'cash1', 'role': 'cashier', 'tenant_code': 'ALPHA'}
        assert decode_token(issue_token(principal, SECRET), SECRET) == principal

    def test_expired(self):
        token = issue_token({'id': 1, 'username': 'a', 'role': 'admin', 'tenant_code': 'A1'}, SECRET, expires_hours=-1)
        with pytest.raises(AuthenticationError) as exc:
            decode_token(token, SECRET)
        assert 'expired' in exc.value.message

    def test_wrong_secret(self):
        token = issue_token({'id': 1, 'username': 'a', 'role': 'admin', 'tenant_code': 'A1'}, SECRET)
        with pytest.raises(AuthenticationError):
            decode_token(token, SECRET + '-other')


class TestEnsureSuperAdmin:
    def test_idempotent(self, directory_session):
        admin, created = ensure_super_admin(directory_session, 'root', 'ignored')
        assert created is False
        assert admin.check_password('rootpass')

    def test_reset_password(self, directory_session):
        admin, _ = ensure_super_admin(directory_session, 'root', 'newpass', reset_password=True)
        assert admin.check_password('newpass')
