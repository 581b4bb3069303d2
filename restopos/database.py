"""Database configuration and initialization.

Two declarative bases live here: ``DirectoryBase`` for the shared directory
(``master.db``: tenants and super-admins) and ``TenantBase`` for the tables
each tenant store carries in its own SQLite file.
"""
import os
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base

logger = logging.getLogger(__name__)

DirectoryBase = declarative_base()
TenantBase = declarative_base()

# Global directory session and engine
engine = None
db_session = None


def sqlite_engine(path, timeout=30.0, echo=False):
    """Create an engine for a file-backed SQLite database."""
    new_engine = create_engine(
        f'sqlite:///{path}',
        echo=echo,
        connect_args={'timeout': timeout, 'check_same_thread': False},
        pool_pre_ping=True,
    )

    @event.listens_for(new_engine, 'connect')
    def _set_sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute(f'PRAGMA busy_timeout = {int(timeout * 1000)}')
        cursor.close()

    return new_engine


def init_db(app):
    """Initialize the directory database and its request teardown."""
    global engine, db_session
    from restopos.migrations import run_migrations, DIRECTORY_MIGRATIONS
    import restopos.models  # noqa: F401  register mappers

    data_dir = app.config['DATA_DIR']
    os.makedirs(os.path.join(data_dir, 'tenants'), exist_ok=True)

    if engine is not None:
        engine.dispose()

    engine = sqlite_engine(
        os.path.join(data_dir, 'master.db'),
        timeout=app.config.get('SQLITE_TIMEOUT', 30.0),
        echo=app.config.get('SQLALCHEMY_ECHO', False),
    )
    db_session = scoped_session(
        sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    )

    DirectoryBase.metadata.create_all(engine)
    run_migrations(engine, DIRECTORY_MIGRATIONS, store_name='directory')
    logger.info(f"Directory database ready at {engine.url.database}")

    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close directory session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def get_session():
    """Get directory database session."""
    return db_session
