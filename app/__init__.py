# app/__init__.py

import logging
import os
import time

import click
from flask import Flask, request
from flask_cors import CORS
from sqlalchemy import text
from werkzeug.exceptions import HTTPException

from .config import Config
from db.extensions import db, migrate, mail, check_redis_health
from controllers.booking_controller import booking_bp
from controllers.slot_controller import slot_bp
from services.container import build_services
from services.errors import ParkingError
from services.sweeper import install_background_sweeper
from services.utils import utcnow


def create_app(config_object=Config, clock=utcnow):
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(config_object)

    CORS(app,
         origins=app.config['CORS_ORIGINS'],
         methods=['GET', 'POST', 'PATCH', 'DELETE', 'OPTIONS'],
         allow_headers=['Content-Type', 'Authorization'],
         supports_credentials=True,
         max_age=3600
    )

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    mail.init_app(app)

    # Register blueprints
    app.register_blueprint(booking_bp, url_prefix='/api')
    app.register_blueprint(slot_bp, url_prefix='/api')

    # Configure logging
    debug_mode = os.getenv("DEBUG_MODE", "false").lower() == "true"
    log_level = logging.DEBUG if debug_mode else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    app.logger.setLevel(log_level)

    app.extensions['parking'] = build_services(app, clock=clock)

    # Request timing middleware for performance monitoring
    @app.before_request
    def before_request():
        request.start_time = time.time()
        if debug_mode:
            app.logger.debug(f"🚀 Started {request.method} {request.path}")

    @app.after_request
    def after_request(response):
        if hasattr(request, 'start_time'):
            elapsed = (time.time() - request.start_time) * 1000

            # Log slow requests (over 500ms)
            if elapsed > 500:
                app.logger.warning(
                    f"⚠️  SLOW REQUEST: {request.method} {request.path} "
                    f"took {elapsed:.2f}ms - Status: {response.status_code}"
                )
            elif debug_mode:
                app.logger.info(
                    f"✅ {request.method} {request.path} "
                    f"took {elapsed:.2f}ms - Status: {response.status_code}"
                )

        return response

    # Business-rule violations
    @app.errorhandler(ParkingError)
    def handle_parking_error(e):
        app.logger.info(f"{request.method} {request.path} rejected: {e.message}")
        return e.to_dict(), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return {
            'success': False,
            'error': e.name.lower().replace(' ', '_'),
            'message': e.description,
        }, e.code

    # Global error handler
    @app.errorhandler(Exception)
    def handle_exception(e):
        app.logger.error(f"❌ Unhandled exception: {str(e)}", exc_info=True)
        return {
            'success': False,
            'message': 'Internal server error. Please try again.'
        }, 500

    # Health check endpoint
    @app.route('/api/health', methods=['GET'])
    def health_check():
        """Health check endpoint for monitoring"""
        locks = app.extensions['parking'].locks
        try:
            db.session.execute(text('SELECT 1'))
        except Exception as e:
            app.logger.error(f"❌ Health check failed: {str(e)}")
            return {
                'status': 'error',
                'message': str(e),
                'timestamp': time.time()
            }, 500

        redis_status = 'not configured'
        if locks.backend == 'redis':
            redis_status = 'connected' if check_redis_health(locks.redis_client) else 'unreachable'

        return {
            'status': 'ok' if redis_status != 'unreachable' else 'degraded',
            'database': 'connected',
            'redis': redis_status,
            'timestamp': time.time()
        }, 200

    register_commands(app)

    if app.config.get('EXPIRY_SWEEP_ENABLED') and not app.testing:
        install_background_sweeper(app)

    return app


def register_commands(app):

    @app.cli.command('init-db')
    def init_db():
        """Create all tables."""
        db.create_all()
        click.echo("Database tables created")

    @app.cli.command('create-slots')
    @click.argument('count', type=int)
    @click.option('--prefix', default='A', help='Label prefix, e.g. A -> A1, A2, ...')
    def create_slots(count, prefix):
        """Seed COUNT slots, skipping labels that already exist."""
        registry = app.extensions['parking'].slots
        created = 0
        for number in range(1, count + 1):
            label = f"{prefix}{number}"
            if registry.store.get_slot_by_number(label):
                continue
            registry.create(label)
            created += 1
        click.echo(f"Created {created} slot(s)")

    @app.cli.command('sweep-expired')
    def sweep_expired():
        """Complete active bookings whose window has elapsed."""
        expired = app.extensions['parking'].sweeper.sweep()
        click.echo(f"Expired {len(expired)} booking(s)")
