"""Configuration module for Flask application."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '0') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # Auth tokens
    JWT_SECRET = os.getenv('JWT_SECRET') or SECRET_KEY
    JWT_EXPIRES_HOURS = int(os.getenv('JWT_EXPIRES_HOURS', '24'))

    # Storage layout: DATA_DIR/master.db + DATA_DIR/tenants/<CODE>.db
    DATA_DIR = os.getenv('DATA_DIR', os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data'))
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'false').lower() == 'true'
    SQLITE_TIMEOUT = float(os.getenv('SQLITE_TIMEOUT', '30'))

    # Tenant store cache
    TENANT_STORE_CACHE_SIZE = int(os.getenv('TENANT_STORE_CACHE_SIZE', '64'))
    TENANT_STORE_IDLE_SECONDS = int(os.getenv('TENANT_STORE_IDLE_SECONDS', '1800'))

    # Platform super-admin seeded on startup
    SEED_SUPER_ADMIN = os.getenv('SEED_SUPER_ADMIN', 'true').lower() == 'true'
    SUPER_ADMIN_USERNAME = os.getenv('SUPER_ADMIN_USERNAME', 'superadmin')
    SUPER_ADMIN_PASSWORD = os.getenv('SUPER_ADMIN_PASSWORD', 'superadmin123')
    SUPER_ADMIN_EMAIL = os.getenv('SUPER_ADMIN_EMAIL', 'superadmin@restopos.local')

    # Sale commit
    MONEY_TOLERANCE = os.getenv('MONEY_TOLERANCE', '0.01')
    ENFORCE_CATALOG_PRICES = os.getenv('ENFORCE_CATALOG_PRICES', 'false').lower() == 'true'
    SALE_NUMBER_ATTEMPTS = int(os.getenv('SALE_NUMBER_ATTEMPTS', '3'))

    # Delivery lifecycle
    DELIVERY_STRICT_TRANSITIONS = os.getenv('DELIVERY_STRICT_TRANSITIONS', 'false').lower() == 'true'

    # Error tracking
    SENTRY_DSN = os.getenv('SENTRY_DSN')


class TestConfig(Config):
    """Configuration used by the test suite."""

    TESTING = True
    DEBUG = False
    JWT_SECRET = 'test-jwt-secret-with-enough-length-for-hs256'
    SEED_SUPER_ADMIN = True
    SUPER_ADMIN_USERNAME = 'root'
    SUPER_ADMIN_PASSWORD = 'rootpass'
    SENTRY_DSN = None
