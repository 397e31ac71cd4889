from __future__ import annotations

import random

from flask import current_app

from ..matching import Assignment, assign
from ..notify import DeliveryReport, MailSettings, Transport, notify_all, transport_from_config
from .roster import load_roster


def _rng_from_config() -> random.Random:
    seed = current_app.config.get("SANTA_RANDOM_SEED")
    return random.Random(seed) if seed is not None else random.Random()


def draw_assignments(rng: random.Random | None = None, max_attempts: int | None = None) -> Assignment:
    people, forbidden = load_roster()
    if max_attempts is None:
        max_attempts = current_app.config.get("SANTA_MAX_ATTEMPTS")
    return assign(people, forbidden, rng=rng or _rng_from_config(), max_attempts=max_attempts)


def run_and_notify(
    transport: Transport | None = None,
    rng: random.Random | None = None,
    max_attempts: int | None = None,
    abort_on_failure: bool | None = None,
    on_sent=None,
) -> tuple[Assignment, DeliveryReport]:
    config = current_app.config
    settings = MailSettings.from_config(config)
    assignment = draw_assignments(rng=rng, max_attempts=max_attempts)

    if abort_on_failure is None:
        abort_on_failure = config.get("SANTA_ABORT_ON_DELIVERY_FAILURE", True)
    report = notify_all(
        assignment,
        settings,
        transport or transport_from_config(config),
        abort_on_failure=abort_on_failure,
        on_sent=on_sent,
    )
    return assignment, report
