# /config.py
import os
from datetime import timedelta

from dotenv import load_dotenv

# Project root
basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, ".env"))

instance_path = os.path.join(basedir, "instance")


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or "smartdrishti-dev-secret-change-me"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        f"sqlite:///{os.path.join(instance_path, 'database.sqlite')}"

    # Auth
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET') or "your-secret-key-change-in-production"
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=24)
    JWT_TOKEN_LOCATION = ["headers"]
    # JSON API: forms are validated from request bodies, no CSRF tokens
    WTF_CSRF_ENABLED = False

    FRONTEND_URL = os.environ.get(
        'FRONTEND_URL',
        "http://localhost:8080,http://localhost:8081,http://localhost:5173",
    )

    # Uploads
    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER') or os.path.join(basedir, "uploads")
    MAX_CONTENT_LENGTH = int(os.environ.get('MAX_CONTENT_LENGTH', 50 * 1024 * 1024))
    MAX_MEDIA_FILES = 10

    # MQTT
    MQTT_ENABLED = _env_bool('MQTT_ENABLED', True)
    MQTT_BROKER_URL = os.environ.get('MQTT_URL') or os.environ.get('MQTT_BROKER_URL') or "broker.hivemq.com"
    MQTT_BROKER_PORT = int(os.environ.get('MQTT_BROKER_PORT', 1883))
    MQTT_USERNAME = os.environ.get('MQTT_USERNAME')
    MQTT_PASSWORD = os.environ.get('MQTT_PASSWORD')
    MQTT_CLIENT_PREFIX = os.environ.get('MQTT_CLIENT_PREFIX', "smartdrishti-backend-")

    SEED_DEMO_ON_START = _env_bool('SEED_DEMO_ON_START', True)
    LOG_LEVEL = os.environ.get('LOG_LEVEL', "INFO")
    PORT = int(os.environ.get('PORT', 5000))


class DevelopmentConfig(Config):
    DEBUG = True


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    JWT_SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"
    MQTT_ENABLED = False
    SEED_DEMO_ON_START = False


class ProductionConfig(Config):
    DEBUG = False


config_by_name = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config(name=None):
    return config_by_name.get(name or os.environ.get('APP_ENV', "development"), DevelopmentConfig)
