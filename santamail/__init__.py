from __future__ import annotations

import logging
import os

from flask import Flask
from flask.logging import default_handler

from .cli import santa_cli
from .extensions import db, migrate
from .views.public import public_bp


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str) -> int | None:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__)

    app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get("DATABASE_URL", "sqlite:///secretsanta.db")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

    # Outgoing mail
    sender = os.environ.get("SANTA_MAIL_FROM", "Secret Santa <santa@localhost>")
    app.config["SANTA_MAIL_FROM"] = sender
    app.config["SANTA_MAIL_REPLY_TO"] = os.environ.get("SANTA_MAIL_REPLY_TO", sender)
    app.config["SANTA_MAIL_SUBJECT"] = os.environ.get("SANTA_MAIL_SUBJECT", "Secret Santa")
    app.config["SANTA_MAIL_BODY"] = os.environ.get("SANTA_MAIL_BODY")
    app.config["SANTA_MAIL_TRANSPORT"] = os.environ.get("SANTA_MAIL_TRANSPORT", "sendmail")
    app.config["SANTA_SENDMAIL_PATH"] = os.environ.get("SANTA_SENDMAIL_PATH", "/usr/sbin/sendmail")
    app.config["SANTA_SMTP_HOST"] = os.environ.get("SANTA_SMTP_HOST", "localhost")
    app.config["SANTA_SMTP_PORT"] = _env_int("SANTA_SMTP_PORT") or 25
    app.config["SANTA_SMTP_USERNAME"] = os.environ.get("SANTA_SMTP_USERNAME")
    app.config["SANTA_SMTP_PASSWORD"] = os.environ.get("SANTA_SMTP_PASSWORD")
    app.config["SANTA_SMTP_STARTTLS"] = _env_bool("SANTA_SMTP_STARTTLS", False)

    # Draw behaviour; 0 attempts means retry forever
    max_attempts = _env_int("SANTA_MAX_ATTEMPTS")
    app.config["SANTA_MAX_ATTEMPTS"] = 10000 if max_attempts is None else max_attempts
    app.config["SANTA_RANDOM_SEED"] = _env_int("SANTA_RANDOM_SEED")
    app.config["SANTA_ABORT_ON_DELIVERY_FAILURE"] = _env_bool("SANTA_ABORT_ON_DELIVERY_FAILURE", True)
    app.config["SANTA_LOG_LEVEL"] = os.environ.get("SANTA_LOG_LEVEL", "INFO").upper()

    if test_config:
        app.config.update(test_config)

    level = app.config["SANTA_LOG_LEVEL"]
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"SANTA_LOG_LEVEL must be a logging level name, got {level!r}")

    logger = logging.getLogger(__name__)
    logger.setLevel(level)
    if default_handler not in logger.handlers:
        logger.addHandler(default_handler)

    db.init_app(app)
    migrate.init_app(app, db)

    app.register_blueprint(public_bp)
    app.cli.add_command(santa_cli)

    return app
