"""Greeter application entry point.

This module exposes the Flask application that serves the browser demo client
and an HTTP rendition of the greeting operation. Running it starts the Flask
development server in a background thread and the WebSocket endpoint in the
foreground.
"""

from __future__ import annotations

import asyncio
import threading

import structlog
from flask import Flask, jsonify, render_template, request
from pydantic import ValidationError

from greeter.config import Settings, get_settings
from greeter.handlers import GreetingController
from greeter.logging_setup import configure_logging
from greeter.messages import HelloMessage
from greeter.server import run_server

logger = structlog.get_logger(__name__)


def create_app(settings: Settings | None = None) -> Flask:
    """Create and configure the Flask application."""

    settings = settings or get_settings()
    controller = GreetingController(delay=settings.greeting_delay)

    app = Flask(__name__)

    @app.get("/")
    def index():
        return render_template(
            "index.html",
            ws_url=settings.ws_url,
            topic=f"{settings.broker_prefix}/greetings",
            send_to=f"{settings.application_prefix}/hello",
        )

    @app.get("/health")
    def health():
        return jsonify(status="ok")

    @app.post("/hello")
    async def hello():
        try:
            message = HelloMessage.model_validate(request.get_json(silent=True))
        except ValidationError:
            return jsonify(error="Expected a JSON object with a string 'name'"), 400
        greeting = await controller.greeting(message)
        return jsonify(greeting.model_dump())

    return app


def _serve_http(app: Flask, settings: Settings) -> threading.Thread:
    thread = threading.Thread(
        target=app.run,
        kwargs={
            "host": settings.http_host,
            "port": settings.http_port,
            "debug": settings.debug,
            "use_reloader": False,
        },
        name="greeter-http",
        daemon=True,
    )
    thread.start()
    return thread


def main() -> None:
    """Run the HTTP and WebSocket servers until interrupted."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.json_logs)

    _serve_http(create_app(settings), settings)
    logger.info(
        "http_listening", url=f"http://{settings.http_host}:{settings.http_port}/"
    )
    try:
        asyncio.run(run_server(settings))
    except KeyboardInterrupt:
        logger.info("shutdown")


if __name__ == "__main__":  # pragma: no cover
    main()
