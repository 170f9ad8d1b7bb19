from __future__ import annotations

import logging
import sys

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .game.service import GameService
from .routes.game import bp as game_bp
from .realtime.handlers import register_socketio_handlers, start_background_loop


def create_app(config_class=Config, service: GameService | None = None) -> tuple[Flask, SocketIO]:
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.getLogger("fakeartist").setLevel(str(app.config.get("LOG_LEVEL", "INFO")).upper())

    if app.config.get("TRUST_PROXY_HEADERS", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    cors_origins = app.config.get("CORS_ORIGINS", "*")
    CORS(app, resources={r"/api/*": {"origins": cors_origins}})

    env_async_mode = app.config.get("SOCKETIO_ASYNC_MODE", "")
    if env_async_mode:
        async_mode = env_async_mode
    else:
        # Default choice:
        # - Windows: threading (eventlet has known compatibility issues on newer Python)
        # - Python >= 3.13: threading (safer default)
        # - Otherwise: eventlet
        if sys.platform.startswith("win") or sys.version_info >= (3, 13):
            async_mode = "threading"
        else:
            async_mode = "eventlet"

    socketio = SocketIO(
        app,
        cors_allowed_origins=cors_origins,
        async_mode=async_mode,
    )

    if service is None:
        service = GameService.from_config(app.config)
    app.extensions["fakeartist"] = service

    app.register_blueprint(game_bp, url_prefix="/api")

    register_socketio_handlers(socketio, service)

    if not app.config.get("TESTING"):
        start_background_loop(
            socketio,
            service,
            sweep_interval_sec=app.config.get("PRESENCE_SWEEP_INTERVAL_SEC", 30),
            auto_advance_turns=app.config.get("TURN_AUTO_ADVANCE", False),
        )

    return app, socketio
