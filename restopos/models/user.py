"""User model - cashiers and admins inside a tenant store."""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from werkzeug.security import generate_password_hash, check_password_hash
from restopos.database import TenantBase
from restopos.utils.number_format import iso


class UserRole:
    """Roles recognized by the permission decorators."""
    ADMIN = 'admin'
    CASHIER = 'cashier'


class User(TenantBase):
    """Tenant-scoped user account."""

    __tablename__ = 'users'

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), nullable=False, unique=True)
    email = Column(String(255), nullable=True, unique=True)
    password = Column(String(255), nullable=False)
    role = Column(String(30), nullable=False, default=UserRole.CASHIER, server_default=UserRole.CASHIER)
    full_name = Column(String(200), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    def set_password(self, password):
        """Set password hash."""
        self.password = generate_password_hash(password, method='scrypt')

    def check_password(self, password):
        """Check password against hash."""
        if not self.password:
            return False
        return check_password_hash(self.password, password)

    def to_principal(self, tenant_code):
        return {'id': self.id, 'username': self.username, 'role': self.role, 'tenant_code': tenant_code}

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'role': self.role,
            'full_name': self.full_name,
            'created_at': iso(self.created_at),
        }

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', role='{self.role}')>"
