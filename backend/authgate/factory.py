"""Application factory wiring configuration, services and blueprints."""

from __future__ import annotations

from typing import Any

from flask import Flask

from authgate.core.config import BaseConfig, get_config, validate_config
from authgate.core.logger import configure_logging, init_app as init_logging


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
    **services: Any,
) -> Flask:
    """Build and configure the Flask application.

    ``services`` may carry ``user_directory``, ``delivery_gateway`` or
    ``clock`` to replace the defaults built from configuration.
    """

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    app.config.from_object(get_config() if config is None else config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    validate_config(app.config)
    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    from authgate.core import extensions

    extensions.init_app(app, **services)

    init_logging(app)

    from authgate.api import init_app as init_api

    init_api(app)

    from authgate.core import errors

    errors.init_app(app)

    return app
