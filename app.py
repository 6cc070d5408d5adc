import logging

import click
from flask import Flask, jsonify
from flask_migrate import Migrate

from config.config import Config
from extensions import db, login_manager

# Route Imports
from routes.auth_routes import auth_bp
from routes.admin_routes import admin_bp
from routes.staff_routes import staff_bp
from routes.student_routes import student_bp

from models import User
from services.errors import AcademicError

migrate = Migrate()


def configure_logging(app):
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )
    app.logger.setLevel(level)


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    configure_logging(app)

    # Initialize Extensions
    db.init_app(app)
    migrate.init_app(app, db)

    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"status": "error", "message": "Login required"}), 401

    @app.errorhandler(AcademicError)
    def handle_academic_error(exc):
        app.logger.info("%s: %s", type(exc).__name__, exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    # Register Blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(staff_bp)
    app.register_blueprint(student_bp)

    @app.cli.command("seed")
    def seed_command():
        """Insert the base roles and departments."""
        from utils.seed_data import run_seed

        run_seed()
        click.echo("Seed data loaded")

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(host="0.0.0.0", port=5000, debug=True)
