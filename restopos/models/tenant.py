"""Tenant model - one row per restaurant in the shared directory."""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from werkzeug.security import generate_password_hash, check_password_hash
from restopos.database import DirectoryBase
from restopos.utils.number_format import iso


class TenantStatus:
    """Tenant status values."""
    ACTIVE = 'active'
    INACTIVE = 'inactive'

    ALL = (ACTIVE, INACTIVE)


class Tenant(DirectoryBase):
    """Tenant record with the owner account.

    ``status='inactive'`` with ``activated_at`` unset means the tenant is
    waiting for its owner's first login. Once ``activated_at`` is set, an
    inactive tenant has been deactivated and only a super-admin can
    reactivate it.
    """

    __tablename__ = 'tenants'

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_code = Column(String(32), nullable=False, unique=True, index=True)
    restaurant_name = Column(String(200), nullable=False)
    owner_name = Column(String(200), nullable=False)
    owner_email = Column(String(255), nullable=False, unique=True)
    owner_phone = Column(String(50), nullable=True)
    username = Column(String(100), nullable=False, unique=True)
    password = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default=TenantStatus.INACTIVE, server_default=TenantStatus.INACTIVE)
    activated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    @property
    def is_active(self):
        return self.status == TenantStatus.ACTIVE

    @property
    def is_pending_activation(self):
        return self.status == TenantStatus.INACTIVE and self.activated_at is None

    def set_password(self, password):
        """Set owner password hash."""
        self.password = generate_password_hash(password, method='scrypt')

    def check_password(self, password):
        """Check owner password against hash."""
        if not self.password:
            return False
        return check_password_hash(self.password, password)

    def to_principal(self):
        return {'id': self.id, 'username': self.username, 'role': 'admin', 'tenant_code': self.tenant_code}

    def to_dict(self):
        """Convert to dictionary for JSON serialization (no password)."""
        return {
            'id': self.id,
            'tenant_code': self.tenant_code,
            'restaurant_name': self.restaurant_name,
            'owner_name': self.owner_name,
            'owner_email': self.owner_email,
            'owner_phone': self.owner_phone,
            'username': self.username,
            'status': self.status,
            'activated_at': iso(self.activated_at),
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Tenant(id={self.id}, tenant_code='{self.tenant_code}', status='{self.status}')>"
