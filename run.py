# run.py
import logging

from config import get_config
from smartdrishti.app import create_app, start_mqtt_bridge
from smartdrishti.services.seed_service import seed_demo_projects
from smartdrishti.utils.log.log import setup_logger

config_class = get_config()
setup_logger(config_class.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = create_app(config_class)

if __name__ == '__main__':
    if app.config["SEED_DEMO_ON_START"]:
        with app.app_context():
            try:
                count = seed_demo_projects()
                logger.info("Seeded %d demo projects", count)
            except Exception:
                # the API still serves user projects without the demo set
                logger.exception("Demo project seeding failed")

    bridge = start_mqtt_bridge(app)

    try:
        # use_reloader=False keeps a single MQTT client
        app.run(host='0.0.0.0', port=app.config["PORT"], debug=app.debug, use_reloader=False)
    finally:
        if bridge is not None:
            bridge.stop()
