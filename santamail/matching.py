"""
Constrained random Secret Santa matching.

Pure logic with no Flask or database dependencies. Each attempt walks the
recipients in a random order and hands each one a random still-unused giver
that is allowed to give to them. A dead-end throws the whole attempt away and
starts again with fresh randomness.
"""
from __future__ import annotations

import enum
import logging
import random
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

logger = logging.getLogger(__name__)

Forbidden = Mapping[str, set[str]]
Assignment = dict[str, tuple[str, str]]


class AssignmentError(RuntimeError):
    pass


class InfeasibleError(AssignmentError):
    """No assignment exists for the given participants and exclusions."""


class RetriesExhausted(AssignmentError):
    def __init__(self, attempts: int):
        super().__init__(f"No valid assignment found after {attempts} attempts.")
        self.attempts = attempts


@dataclass(frozen=True)
class Person:
    name: str
    contact: str


class DrawState(enum.Enum):
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


@dataclass
class DrawResult:
    state: DrawState
    attempts: int
    assignment: Assignment | None = None


def build_forbidden(pairs: Iterable[tuple[str, str]], names: Iterable[str] | None = None) -> dict[str, set[str]]:
    """Symmetric name -> {names} lookup. Pairs naming unknown people are dropped."""
    known = set(names) if names is not None else None
    forbidden: dict[str, set[str]] = {}
    for a, b in pairs:
        if a == b:
            continue
        if known is not None and (a not in known or b not in known):
            logger.debug("Ignoring exclusion %r/%r: not a participant", a, b)
            continue
        forbidden.setdefault(a, set()).add(b)
        forbidden.setdefault(b, set()).add(a)
    return forbidden


def is_allowed(giver: str, recipient: str, forbidden: Forbidden) -> bool:
    if giver == recipient:
        return False
    return recipient not in forbidden.get(giver, ()) and giver not in forbidden.get(recipient, ())


def find_matching(names: Sequence[str], forbidden: Forbidden) -> dict[str, str] | None:
    """Exact giver -> recipient matching via augmenting paths, or None."""
    allowed = {g: [r for r in names if is_allowed(g, r, forbidden)] for g in names}
    giver_of: dict[str, str] = {}

    def augment(giver: str, seen: set[str]) -> bool:
        for r in allowed[giver]:
            if r in seen:
                continue
            seen.add(r)
            if r not in giver_of or augment(giver_of[r], seen):
                giver_of[r] = giver
                return True
        return False

    # most constrained givers first
    for g in sorted(names, key=lambda n: len(allowed[n])):
        if not augment(g, set()):
            return None
    return {g: r for r, g in giver_of.items()}


def is_feasible(names: Sequence[str], forbidden: Forbidden) -> bool:
    if len(names) < 2:
        return False
    return find_matching(names, forbidden) is not None


def validate_assignment(assignment: Assignment, people: Sequence[Person], forbidden: Forbidden) -> None:
    """Raise AssignmentError unless the assignment is a valid bijection."""
    names = {p.name for p in people}
    if set(assignment) != names:
        missing = names - set(assignment)
        extra = set(assignment) - names
        raise AssignmentError(f"Giver mismatch: missing {sorted(missing)}, extra {sorted(extra)}")

    recipients = [recipient for _, recipient in assignment.values()]
    if len(set(recipients)) != len(recipients) or set(recipients) != names:
        raise AssignmentError(f"Recipients are not a permutation of participants: {sorted(recipients)}")

    for giver, (_, recipient) in assignment.items():
        if not is_allowed(giver, recipient, forbidden):
            raise AssignmentError(f"Disallowed pair: {giver} -> {recipient}")


def _attempt(people: Sequence[Person], forbidden: Forbidden, rng: random.Random) -> Assignment | None:
    order = list(people)
    rng.shuffle(order)
    pool = list(people)
    result: Assignment = {}

    for recipient in order:
        rng.shuffle(pool)
        giver = next((g for g in pool if is_allowed(g.name, recipient.name, forbidden)), None)
        if giver is None:
            logger.debug("No giver left for %s (pool: %s)", recipient.name, [g.name for g in pool])
            return None
        pool.remove(giver)
        result[giver.name] = (giver.contact, recipient.name)
    return result


def _check_inputs(people: Sequence[Person], forbidden: Forbidden, precheck: bool) -> None:
    if len(people) < 2:
        raise InfeasibleError("Need at least 2 participants to run assignments.")

    names = [p.name for p in people]
    if len(set(names)) != len(names):
        dupes = sorted({n for n in names if names.count(n) > 1})
        raise AssignmentError(f"Duplicate participant names: {', '.join(dupes)}")

    if precheck and find_matching(names, forbidden) is None:
        raise InfeasibleError("No valid assignment satisfies the current exclusions.")


def draw(
    people: Sequence[Person],
    forbidden: Forbidden | None = None,
    rng: random.Random | None = None,
    max_attempts: int | None = None,
    precheck: bool = True,
) -> DrawResult:
    """
    Run randomized attempts until one succeeds or max_attempts is reached.

    max_attempts of None or 0 means no cap. With precheck disabled and an
    infeasible roster that combination never returns.
    """
    forbidden = forbidden or {}
    rng = rng or random.Random()
    _check_inputs(people, forbidden, precheck)

    state = DrawState.ATTEMPTING
    attempts = 0
    assignment = None
    while state is DrawState.ATTEMPTING:
        attempts += 1
        assignment = _attempt(people, forbidden, rng)
        if assignment is not None:
            validate_assignment(assignment, people, forbidden)
            state = DrawState.SUCCEEDED
        else:
            logger.warning("Assignment attempt %d hit a dead end", attempts)
            if max_attempts and attempts >= max_attempts:
                state = DrawState.EXHAUSTED

    if state is DrawState.SUCCEEDED:
        logger.info("Drew assignments for %d participants in %d attempt(s)", len(people), attempts)
    else:
        logger.error("Gave up after %d attempts", attempts)
    return DrawResult(state=state, attempts=attempts, assignment=assignment)


def assign(
    people: Sequence[Person],
    forbidden: Forbidden | None = None,
    rng: random.Random | None = None,
    max_attempts: int | None = None,
    precheck: bool = True,
) -> Assignment:
    result = draw(people, forbidden, rng=rng, max_attempts=max_attempts, precheck=precheck)
    if result.state is DrawState.EXHAUSTED:
        raise RetriesExhausted(result.attempts)
    return result.assignment
