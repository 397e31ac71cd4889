from __future__ import annotations

import logging

from ..extensions import db
from ..matching import Person, build_forbidden
from ..models import Participant, Exclusion

logger = logging.getLogger(__name__)


class RosterError(ValueError):
    pass


def _get(name: str) -> Participant:
    p = Participant.query.filter_by(name=(name or "").strip()).first()
    if not p:
        raise RosterError(f"No such participant: {name!r}.")
    return p


def _find_exclusion(first: Participant, second: Participant) -> Exclusion | None:
    low, high = sorted((first.id, second.id))
    return Exclusion.query.filter_by(person_a_id=low, person_b_id=high).first()


def add_participant(name: str, email: str) -> Participant:
    name = (name or "").strip()
    email = (email or "").strip()

    if not name:
        raise RosterError("Name is required.")
    if not email:
        raise RosterError("Email is required.")
    if Participant.query.filter_by(name=name).first():
        raise RosterError(f"{name!r} is already registered.")
    if Participant.query.filter_by(email=email).first():
        raise RosterError(f"{email!r} is already registered.")

    p = Participant(name=name, email=email)
    db.session.add(p)
    db.session.commit()
    logger.info("Added participant %s", name)
    return p


def remove_participant(name: str) -> None:
    p = _get(name)
    db.session.delete(p)
    db.session.commit()
    logger.info("Removed participant %s", p.name)


def add_exclusion(name_a: str, name_b: str) -> Exclusion:
    first, second = _get(name_a), _get(name_b)
    if first.id == second.id:
        raise RosterError("A participant cannot be excluded from themselves.")
    if _find_exclusion(first, second):
        raise RosterError(f"{first.name} and {second.name} are already excluded.")

    e = Exclusion.between(first, second)
    db.session.add(e)
    db.session.commit()
    logger.info("Excluded %s <-> %s", first.name, second.name)
    return e


def remove_exclusion(name_a: str, name_b: str) -> None:
    first, second = _get(name_a), _get(name_b)
    e = _find_exclusion(first, second)
    if not e:
        raise RosterError(f"{first.name} and {second.name} are not excluded.")
    db.session.delete(e)
    db.session.commit()
    logger.info("Allowed %s <-> %s", first.name, second.name)


def list_participants() -> list[Participant]:
    return Participant.query.order_by(Participant.name.asc()).all()


def list_exclusions() -> list[tuple[str, str]]:
    return sorted(tuple(sorted(e.names)) for e in Exclusion.query.all())


def load_roster() -> tuple[list[Person], dict[str, set[str]]]:
    """The engine's inputs: immutable people plus the symmetric exclusion map."""
    people = [Person(name=p.name, contact=p.email) for p in list_participants()]
    forbidden = build_forbidden(list_exclusions(), names=[p.name for p in people])
    return people, forbidden
