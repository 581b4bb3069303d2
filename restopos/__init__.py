"""Flask application factory."""
import logging
import os

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from restopos.database import init_db


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )
    app.logger.setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    # Sentry error tracking in production
    if app.config.get('SENTRY_DSN') and app.config.get('ENV') == 'production':
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=app.config['SENTRY_DSN'],
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment=app.config.get('ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Prometheus metrics instrumentation
    from restopos.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Directory database and tenant store registry
    init_db(app)
    from restopos.tenant_db import init_tenant_stores
    init_tenant_stores(app)

    if app.config.get('SEED_SUPER_ADMIN'):
        from restopos.database import get_session
        from restopos.services.auth_service import ensure_super_admin
        ensure_super_admin(
            get_session(),
            app.config['SUPER_ADMIN_USERNAME'],
            app.config['SUPER_ADMIN_PASSWORD'],
            email=app.config.get('SUPER_ADMIN_EMAIL'),
        )
        get_session().remove()

    # Principal from bearer token; tenant session released after each request
    from restopos.middleware import load_principal, close_tenant_session
    app.before_request(load_principal)
    app.teardown_request(close_tenant_session)

    # Error Handlers
    from restopos.exceptions import PosError

    @app.errorhandler(PosError)
    def handle_pos_error(error):
        """Handle custom application exceptions."""
        if error.status_code >= 500:
            app.logger.error(f"PosError [{error.status_code}] {error.code}: {error.message} {getattr(error, 'reason', '')}")
        else:
            app.logger.warning(f"PosError [{error.status_code}] {error.code}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({
            'status': 'error',
            'code': error.name.lower().replace(' ', '_'),
            'message': error.description,
        }), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.exception(f"Unhandled Exception: {error}")
        return jsonify({'status': 'error', 'code': 'server_error', 'message': 'Internal Server Error'}), 500

    # Register blueprints
    from restopos.blueprints.main import main_bp
    from restopos.blueprints.metrics import metrics_bp
    from restopos.blueprints.auth import auth_bp
    from restopos.blueprints.tenants import tenants_bp
    from restopos.blueprints.sales import sales_bp
    from restopos.blueprints.deliveries import deliveries_bp
    from restopos.blueprints.delivery_boys import delivery_boys_bp
    from restopos.blueprints.held_sales import held_sales_bp
    from restopos.blueprints.catalog import catalog_bp
    from restopos.blueprints.customers import customers_bp
    from restopos.blueprints.users import users_bp
    from restopos.blueprints.settings import settings_bp
    from restopos.blueprints.reports import reports_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(metrics_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(tenants_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(deliveries_bp)
    app.register_blueprint(delivery_boys_bp)
    app.register_blueprint(held_sales_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(reports_bp)

    # Register CLI commands
    from restopos.cli_commands import init_cli_commands
    init_cli_commands(app)

    app.logger.info(f"DATA_DIR={app.config.get('DATA_DIR')}")

    return app
