"""Custom exceptions for the restaurant POS application."""

class PosError(Exception):
    """Base exception for all application errors."""
    code = 'server_error'

    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['code'] = self.code
        rv['status'] = 'error'
        return rv

class BusinessLogicError(PosError):
    """Exception raised for invalid input or business rule violations."""
    code = 'validation_error'

    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)

class NotFoundError(PosError):
    """Exception raised when a resource is not found."""
    code = 'not_found'

    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)

class TenantNotFoundError(NotFoundError):
    """Raised when a tenant code does not exist in the directory."""
    code = 'tenant_not_found'

    def __init__(self, tenant_code):
        super().__init__(f'Tenant {tenant_code} not found', payload={'tenant_code': tenant_code})

class TenantInactiveError(PosError):
    """Raised when a tenant exists but its status forbids access."""
    code = 'tenant_inactive'

    def __init__(self, tenant_code, message=None):
        super().__init__(
            message or 'This restaurant account is inactive. Please contact the administrator.',
            403,
            {'tenant_code': tenant_code}
        )

class InvalidCredentialsError(PosError):
    """Raised on a password or identity mismatch."""
    code = 'invalid_credentials'

    def __init__(self, message="Invalid credentials"):
        super().__init__(message, 401)

class AuthenticationError(PosError):
    """Raised when a request carries no valid bearer token."""
    code = 'authentication_required'

    def __init__(self, message="Authentication required"):
        super().__init__(message, 401)

class UnauthorizedError(PosError):
    """Raised when a user lacks permission for an action."""
    code = 'forbidden'

    def __init__(self, message="Unauthorized access"):
        super().__init__(message, 403)

class ConflictError(PosError):
    """Raised when a delete would orphan dependent records."""
    code = 'referential_conflict'

    def __init__(self, message, payload=None):
        super().__init__(message, 409, payload)

class StoreUnavailableError(PosError):
    """Raised when a tenant store cannot be opened."""
    code = 'store_error'

    def __init__(self, tenant_code, reason=''):
        super().__init__(f'Tenant store {tenant_code} is unavailable', 500)
        self.reason = reason

class SchemaMigrationError(StoreUnavailableError):
    """Raised when a schema migration fails for a reason other than a duplicate."""

    def __init__(self, tenant_code, version, reason=''):
        super().__init__(tenant_code, reason)
        self.version = version
        self.message = f'Schema migration {version} failed for store {tenant_code}'
