import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv


def _use_eventlet() -> bool:
    if sys.platform.startswith("win") or sys.version_info >= (3, 13):
        return False
    return os.environ.get("SOCKETIO_ASYNC_MODE", "").strip() in ("", "eventlet")


def main() -> None:
    load_dotenv(Path(__file__).resolve().parents[1] / ".env")

    # Must happen before the server modules are imported.
    if _use_eventlet():
        import eventlet

        eventlet.monkey_patch()

    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    from fakeartist.server import create_app

    app, socketio = create_app()

    # Development entry point; production goes through wsgi.py.
    socketio.run(
        app,
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "3000")),
        debug=os.environ.get("FLASK_DEBUG", "0") == "1",
        use_reloader=False,
        allow_unsafe_werkzeug=True,
    )


if __name__ == "__main__":
    main()
