import logging

from flask import Flask
from .config import Config
from .extensions import cors


def create_app(config_class: type[Config] = Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Extensions
    cors.init_app(app)

    # Blueprints
    from .routes.sessions_api import bp as sessions_api
    from .routes.mockups_api import bp as mockups_api
    from .routes.templates_api import bp as templates_api

    app.register_blueprint(sessions_api, url_prefix="/api")
    app.register_blueprint(mockups_api, url_prefix="/api")
    app.register_blueprint(templates_api, url_prefix="/api")

    return app
