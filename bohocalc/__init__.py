from flask import Flask, jsonify
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_wtf.csrf import CSRFProtect
from dotenv import load_dotenv
import os
import logging

load_dotenv()

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
csrf = CSRFProtect()


def register_blueprints(app):
    """Attach every blueprint and CLI group. Shared by create_app and the tests."""
    from bohocalc.routes.main import main_bp
    from bohocalc.core.auth import auth_bp
    from bohocalc.projects.calculator.routes import calculator_bp
    from bohocalc.projects.history.routes import history_bp
    from bohocalc.projects.marketplace.routes import marketplace_bp
    from bohocalc.projects.marketplace.commands import marketplace_cli

    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(calculator_bp, url_prefix='/calculator')
    app.register_blueprint(history_bp)  # Has its own url_prefix defined
    app.register_blueprint(marketplace_bp)  # Has its own url_prefix defined

    app.cli.add_command(marketplace_cli)

    # Import models to ensure they're known to Flask-SQLAlchemy
    from bohocalc.models import User, LogEntry
    from bohocalc.projects.history.models import CalculationHistory
    from bohocalc.projects.marketplace.models import Calculator, CalculatorUsage, CalculatorRating

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({'error': 'Method not allowed'}), 405


def create_app():
    # Validate required environment variables
    required_vars = ['DATABASE_URL', 'SECRET_KEY']
    for var in required_vars:
        if not os.getenv(var):
            raise ValueError(f"Required environment variable {var} is not set")

    app = Flask(__name__)
    app.config.from_object('config')

    # Configure logging
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    login_manager.init_app(app)

    register_blueprints(app)

    return app
