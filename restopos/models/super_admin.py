"""SuperAdmin model - platform operators stored in the shared directory."""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from werkzeug.security import generate_password_hash, check_password_hash
from restopos.database import DirectoryBase


class SuperAdmin(DirectoryBase):
    """Platform super-admin. Has no tenant and manages tenant provisioning."""

    __tablename__ = 'super_admins'

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), nullable=False, unique=True)
    password = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True, unique=True)
    full_name = Column(String(200), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    def set_password(self, password):
        """Set password hash."""
        self.password = generate_password_hash(password, method='scrypt')

    def check_password(self, password):
        """Check password against hash."""
        if not self.password:
            return False
        return check_password_hash(self.password, password)

    def to_principal(self):
        return {'id': self.id, 'username': self.username, 'role': 'super_admin', 'tenant_code': None}

    def __repr__(self):
        return f"<SuperAdmin(id={self.id}, username='{self.username}')>"
