import os
import logging
import click
from logging.handlers import RotatingFileHandler
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException
from config import config
from extensions import db, migrate, login_manager, limiter


def configure_logging(app):
    """Configure application logging"""
    if not app.debug and not app.testing:
        # Create logs directory if it doesn't exist
        if not os.path.exists('logs'):
            os.mkdir('logs')

        file_handler = RotatingFileHandler(
            'logs/autocare.log',
            maxBytes=10240000,  # 10MB
            backupCount=10
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s '
            '[in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)

        app.logger.setLevel(logging.INFO)
        app.logger.info('AutoCare startup')
    else:
        # Development logging to console
        app.logger.setLevel(logging.DEBUG)
        app.logger.info('AutoCare startup (DEBUG mode)')


def create_app(config_name=None):
    """Application factory pattern"""

    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config[config_name])
    config[config_name].init_app(app)

    # Configure logging
    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    limiter.init_app(app)

    # Add security headers
    @app.after_request
    def add_security_headers(response):
        """Add security headers to all responses"""
        headers = app.config.get('SECURITY_HEADERS', {})
        for header, value in headers.items():
            response.headers[header] = value
        return response

    # Bearer-token authentication for Flask-Login
    @login_manager.request_loader
    def load_user_from_request(req):
        from models.users import User
        from utils.tokens import bearer_token, decode_access_token
        token = bearer_token(req)
        if not token:
            return None
        payload = decode_access_token(token)
        if not payload:
            return None
        user = db.session.get(User, int(payload['sub']))
        if user is None or not user.is_active:
            return None
        return user

    @login_manager.unauthorized_handler
    def unauthorized():
        return _error_response(401, 'unauthorized', 'Authentication required')

    # Import models to ensure they're registered with SQLAlchemy
    with app.app_context():
        import models

    # Register blueprints
    from blueprints.auth import auth_bp
    from blueprints.vehicles import vehicles_bp
    from blueprints.maintenances import maintenances_bp
    from blueprints.expenses import expenses_bp
    from blueprints.reminders import reminders_bp
    from blueprints.notifications import notifications_bp
    from blueprints.reports import reports_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(vehicles_bp)
    app.register_blueprint(maintenances_bp)
    app.register_blueprint(expenses_bp)
    app.register_blueprint(reminders_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(reports_bp)

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok'})

    # Create database tables
    with app.app_context():
        db.create_all()

    # Services are built once per app and shared by routes, CLI and cron
    from services import build_services
    from services.signals import (
        deliver_push_notification, log_notification_created, notification_created,
    )
    services = build_services(app)
    notification_created.connect(log_notification_created)
    notification_created.connect(deliver_push_notification)

    if app.config.get('CRON_ENABLED') and not app.testing:
        # Under the reloader only the child process runs jobs
        if not app.debug or os.environ.get('WERKZEUG_RUN_MAIN') == 'true':
            services.cron_service.start()

    # Register error handlers
    register_error_handlers(app)

    # Register CLI commands
    register_commands(app)

    return app


def _error_response(status, code, message, details=None):
    body = {'code': code, 'message': message}
    if details:
        body['details'] = details
    return jsonify({'error': body}), status


def register_error_handlers(app):
    """Register global error handlers"""
    from services.exceptions import ServiceError

    @app.errorhandler(ServiceError)
    def service_error(error):
        db.session.rollback()
        if error.status_code >= 500:
            app.logger.error(f'{request.method} {request.path}: {error.message}')
        return jsonify({'error': error.to_dict()}), error.status_code

    @app.errorhandler(404)
    def not_found_error(error):
        return _error_response(404, 'not_found', 'Resource not found')

    @app.errorhandler(403)
    def forbidden_error(error):
        return _error_response(403, 'access_denied', 'You do not have access to this resource')

    @app.errorhandler(429)
    def ratelimit_error(error):
        return _error_response(429, 'rate_limited', f'Too many requests: {error.description}')

    @app.errorhandler(HTTPException)
    def http_error(error):
        return _error_response(error.code, error.name.lower().replace(' ', '_'), error.description)

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        app.logger.error(f'Internal Server Error: {error}')
        return _error_response(500, 'internal_error', 'Internal server error')


def register_commands(app):
    """Register Flask CLI commands."""

    @app.cli.group()
    def cron():
        """Inspect and run the scheduled background jobs."""
        pass

    @cron.command('list')
    def list_jobs():
        """List the scheduled jobs and when they run."""
        from services import get_services
        click.echo(f'{"Job":<30} {"Schedule":<40}')
        click.echo('-' * 70)
        for job in get_services().cron_service.jobs:
            click.echo(f'{job["name"]:<30} {job["schedule"]:<40}')

    @cron.command('run')
    @click.argument('job')
    def run_job(job):
        """Run one scheduled JOB immediately."""
        from services import get_services
        cron_service = get_services().cron_service
        if job not in [j['name'] for j in cron_service.jobs]:
            click.echo(f'ERROR: Unknown job "{job}"', err=True)
            return
        result = cron_service.run_job(job)
        click.echo(f'SUCCESS: {job} finished: {result}')

    @app.cli.group()
    def users():
        """Manage user roles."""
        pass

    @users.command('grant-admin')
    @click.argument('email')
    def grant_admin(email):
        """Give the ADMIN role to a user by EMAIL."""
        from models.users import User
        from models.enums import UserRole
        user = User.query.filter_by(email=email).first()
        if not user:
            click.echo(f'ERROR: No user found with email "{email}"', err=True)
            return
        if user.is_admin:
            click.echo(f'"{user.name}" ({email}) is already an admin.')
            return
        user.role = UserRole.ADMIN.value
        db.session.commit()
        click.echo(f'SUCCESS: "{user.name}" ({email}) is now an admin.')

    @users.command('revoke-admin')
    @click.argument('email')
    def revoke_admin(email):
        """Return an admin to the OWNER role by EMAIL."""
        from models.users import User
        from models.enums import UserRole
        user = User.query.filter_by(email=email).first()
        if not user:
            click.echo(f'ERROR: No user found with email "{email}"', err=True)
            return
        if not user.is_admin:
            click.echo(f'"{user.name}" ({email}) is not an admin.')
            return
        user.role = UserRole.OWNER.value
        db.session.commit()
        click.echo(f'SUCCESS: Admin role revoked from "{user.name}" ({email}).')

    @users.command('list-admins')
    def list_admins():
        """List all users with the ADMIN role."""
        from models.users import User
        from models.enums import UserRole
        admins = User.query.filter_by(role=UserRole.ADMIN.value).all()
        if not admins:
            click.echo('No admins found.')
            return
        click.echo(f'{"ID":<5} {"Name":<25} {"Email":<40} {"Active":<8}')
        click.echo('-' * 80)
        for u in admins:
            click.echo(f'{u.id:<5} {u.name:<25} {u.email:<40} {str(u.is_active):<8}')


if __name__ == '__main__':
    app = create_app()
    # SECURITY: Only bind to localhost in development
    app.run(host='127.0.0.1', port=5000, debug=True)
