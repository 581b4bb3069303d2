"""Tenant store user management (cashiers and admins)."""
import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from restopos.exceptions import BusinessLogicError, NotFoundError
from restopos.models import User, UserRole

logger = logging.getLogger(__name__)

ROLES = (UserRole.ADMIN, UserRole.CASHIER)


def _role(value):
    role = value or UserRole.CASHIER
    if role not in ROLES:
        raise BusinessLogicError(f"role must be one of {', '.join(ROLES)}")
    return role


def _commit(session):
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise BusinessLogicError('Username or email already exists')
    except Exception:
        session.rollback()
        raise


def list_users(session):
    return session.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


def get_user(session, user_id: int) -> User:
    user = session.get(User, user_id)
    if not user:
        raise NotFoundError(f'User {user_id} not found')
    return user


def find_login_user(session, identifier: str):
    """Look up a store user by username or email."""
    return session.query(User).filter(
        or_(User.username == identifier, User.email == identifier)
    ).first()


def create_user(session, data: dict) -> User:
    username = (data.get('username') or '').strip()
    email = (data.get('email') or '').strip()
    password = data.get('password') or ''
    if not username or not email or not password:
        raise BusinessLogicError('Username, email, and password are required')

    user = User(
        username=username,
        email=email,
        role=_role(data.get('role')),
        full_name=data.get('full_name') or None,
    )
    user.set_password(password)
    session.add(user)
    _commit(session)
    logger.info(f"Created user {user.id} '{username}' with role {user.role}")
    return user


def update_user(session, user_id: int, data: dict) -> User:
    user = get_user(session, user_id)
    for field in ('username', 'email'):
        if field in data:
            value = (data.get(field) or '').strip()
            if not value:
                raise BusinessLogicError(f'{field.capitalize()} cannot be empty')
            setattr(user, field, value)
    if 'full_name' in data:
        user.full_name = data.get('full_name') or None
    if 'role' in data:
        user.role = _role(data.get('role'))
    if data.get('password'):
        user.set_password(data['password'])
    _commit(session)
    return user


def delete_user(session, user_id: int, operator: dict) -> None:
    """Delete a store user. Operators cannot delete their own account."""
    user = get_user(session, user_id)
    if operator.get('id') == user.id and operator.get('username') == user.username:
        raise BusinessLogicError('Cannot delete your own account')
    session.delete(user)
    _commit(session)
    logger.info(f"Deleted user {user_id}")
