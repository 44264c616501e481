import logging
import os

import click
from flask import Flask, jsonify
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from config import get_config
from smartdrishti.db import db
from smartdrishti.models import User
from smartdrishti.services.live_updates import LiveUpdateHub
from smartdrishti.utils.errors import ApiError

logger = logging.getLogger(__name__)

jwt = JWTManager()
migrate = Migrate()


# -------------------------
# JWT responses
# -------------------------
@jwt.user_lookup_loader
def load_user(_jwt_header, jwt_data):
    try:
        return db.session.get(User, int(jwt_data["sub"]))
    except (TypeError, ValueError):
        return None


@jwt.user_lookup_error_loader
def user_not_found(_jwt_header, _jwt_data):
    return jsonify({"error": "Invalid token - user not found"}), 401


@jwt.unauthorized_loader
def missing_token(_reason):
    return jsonify({"error": "Access token required"}), 401


@jwt.invalid_token_loader
def invalid_token(_reason):
    return jsonify({"error": "Invalid token"}), 403


@jwt.expired_token_loader
def expired_token(_jwt_header, _jwt_payload):
    return jsonify({"error": "Token expired"}), 403


def register_error_handlers(app):

    @app.errorhandler(ApiError)
    def handle_api_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        if error.code == 404:
            return jsonify({"error": "Endpoint not found"}), 404
        return jsonify({"error": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        db.session.rollback()
        logger.exception("Unhandled error: %s", error)
        message = str(error) if app.debug else "Something went wrong"
        return jsonify({"error": "Internal server error", "message": message}), 500


def register_commands(app):

    @app.cli.command("seed-demo")
    @click.option("--with-user", is_flag=True, help="Also create the demo user account.")
    def seed_demo(with_user):
        """Replaces demo projects with the bundled set."""
        from smartdrishti.services.seed_service import ensure_demo_user, seed_demo_projects
        if with_user:
            ensure_demo_user()
        count = seed_demo_projects()
        click.echo(f"Seeded {count} demo projects")

    @app.cli.command("rollup-hourly")
    @click.option("--device", default=None, help="Only roll up this device id.")
    @click.option("--rebuild", is_flag=True, help="Recompute every hour instead of resuming after the newest bucket.")
    def rollup(device, rebuild):
        """Writes hourly sensor aggregates from raw readings."""
        from smartdrishti.services.rollup_service import rollup_hourly
        count = rollup_hourly(device_id=device, rebuild=rebuild)
        click.echo(f"Wrote {count} hourly buckets")


def create_app(config_class=None):
    app = Flask(__name__)
    app.config.from_object(config_class or get_config())

    os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)
    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite:///") and ":memory:" not in app.config["SQLALCHEMY_DATABASE_URI"]:
        os.makedirs(os.path.dirname(app.config["SQLALCHEMY_DATABASE_URI"][len("sqlite:///"):]), exist_ok=True)

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    origins = [origin.strip() for origin in app.config["FRONTEND_URL"].split(",") if origin.strip()]
    CORS(app, origins=origins, supports_credentials=True)

    with app.app_context():
        db.create_all()

    hub = LiveUpdateHub()
    app.extensions["live_updates"] = hub

    from smartdrishti.views.sockets import init_sockets
    init_sockets(app, hub)

    # Blueprints
    from smartdrishti.views.routes.main_routes import main as main_bp
    from smartdrishti.views.routes.auth_routes import auth_bp
    from smartdrishti.views.routes.project_routes import projects_bp
    from smartdrishti.views.routes.step_routes import steps_bp
    from smartdrishti.views.routes.iot_routes import iot_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(projects_bp)
    app.register_blueprint(steps_bp)
    app.register_blueprint(iot_bp)

    register_error_handlers(app)
    register_commands(app)

    return app


def start_mqtt_bridge(app):
    """Starts the MQTT bridge when MQTT_ENABLED; the bridge is kept in app.extensions."""
    if not app.config.get("MQTT_ENABLED"):
        logger.info("MQTT bridge disabled")
        return None
    from smartdrishti.services.mqtt_bridge import MqttBridge
    bridge = MqttBridge(app, app.extensions.get("live_updates"))
    app.extensions["mqtt_bridge"] = bridge
    bridge.start()
    return bridge
