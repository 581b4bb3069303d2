"""
Flask CLI commands for platform administration.

Commands:
- flask create-super-admin: Create or reset a super-admin
- flask create-tenant: Provision a tenant and its store
"""

import click

from restopos.database import get_session
from restopos.exceptions import PosError
from restopos.services.auth_service import ensure_super_admin
from restopos.services.tenant_service import create_tenant
from restopos.tenant_db import get_tenant_stores


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('create-super-admin')
    @click.option('--username', prompt=True, help='Super-admin username')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Super-admin password')
    @click.option('--email', default=None, help='Super-admin email address')
    def create_super_admin(username, password, email):
        """Create a super-admin, or reset the password of an existing one."""
        if len(password) < 6:
            raise click.ClickException('Password must be at least 6 characters.')

        admin, created = ensure_super_admin(get_session(), username, password, email=email, reset_password=True)
        action = 'created' if created else 'updated'
        click.echo(click.style(f'Super-admin {action}: {admin.username} (id={admin.id})', fg='green'))

    @app.cli.command('create-tenant')
    @click.option('--restaurant-name', prompt=True, help='Restaurant name')
    @click.option('--owner-name', prompt=True, help='Owner full name')
    @click.option('--owner-email', prompt=True, help='Owner email address')
    @click.option('--owner-phone', default=None, help='Owner phone')
    @click.option('--username', prompt=True, help='Owner login username')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Owner password')
    @click.option('--tenant-code', default=None, help='Tenant code (generated when omitted)')
    @click.option('--active/--pending', default=False, help='Activate now instead of on first owner login')
    def create_tenant_command(restaurant_name, owner_name, owner_email, owner_phone, username,
                              password, tenant_code, active):
        """Provision a tenant: directory record, store file and default settings."""
        try:
            tenant = create_tenant(get_session(), get_tenant_stores(), {
                'restaurant_name': restaurant_name,
                'owner_name': owner_name,
                'owner_email': owner_email,
                'owner_phone': owner_phone,
                'username': username,
                'password': password,
                'tenant_code': tenant_code,
                'status': 'active' if active else 'inactive',
            })
        except PosError as e:
            raise click.ClickException(e.message)

        click.echo(click.style(f'Tenant created: {tenant.tenant_code} ({tenant.restaurant_name})', fg='green', bold=True))
        click.echo(f'   Owner login: {tenant.username}')
        click.echo(f'   Status: {tenant.status}')
