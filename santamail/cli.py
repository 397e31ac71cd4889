from __future__ import annotations

import random

import click
from flask.cli import AppGroup

from .extensions import db
from .matching import AssignmentError, is_feasible
from .notify import ConsoleTransport, DeliveryError
from .services import roster
from .services.assignments import run_and_notify

santa_cli = AppGroup("santa", help="Manage the Secret Santa roster and run the draw.")


@santa_cli.command("init-db")
def init_db():
    """Create the roster tables."""
    db.create_all()
    click.echo("Database initialised.")


@santa_cli.command("add")
@click.argument("name")
@click.argument("email")
def add_participant(name, email):
    """Add a participant."""
    try:
        p = roster.add_participant(name, email)
    except roster.RosterError as e:
        raise click.ClickException(str(e))
    click.echo(f"Added {p.name} <{p.email}>.")


@santa_cli.command("remove")
@click.argument("name")
def remove_participant(name):
    """Remove a participant and their exclusions."""
    try:
        roster.remove_participant(name)
    except roster.RosterError as e:
        raise click.ClickException(str(e))
    click.echo(f"Removed {name}.")


@santa_cli.command("exclude")
@click.argument("first")
@click.argument("second")
def exclude(first, second):
    """Forbid FIRST and SECOND from drawing each other."""
    try:
        roster.add_exclusion(first, second)
    except roster.RosterError as e:
        raise click.ClickException(str(e))
    click.echo(f"{first} and {second} will not draw each other.")


@santa_cli.command("allow")
@click.argument("first")
@click.argument("second")
def allow(first, second):
    """Drop the exclusion between FIRST and SECOND."""
    try:
        roster.remove_exclusion(first, second)
    except roster.RosterError as e:
        raise click.ClickException(str(e))
    click.echo(f"{first} and {second} may draw each other again.")


@santa_cli.command("list")
def list_roster():
    """Show participants and exclusions."""
    people = roster.list_participants()
    if not people:
        click.echo("No participants yet.")
        return
    click.echo(f"Participants ({len(people)}):")
    for p in people:
        click.echo(f"  {p.name} <{p.email}>")

    pairs = roster.list_exclusions()
    if pairs:
        click.echo(f"Exclusions ({len(pairs)}):")
        for a, b in pairs:
            click.echo(f"  {a} <-> {b}")


@santa_cli.command("check")
def check():
    """Report whether any valid draw exists for the roster."""
    people, forbidden = roster.load_roster()
    if is_feasible([p.name for p in people], forbidden):
        click.echo(f"A valid draw exists for {len(people)} participants.")
        return
    raise click.ClickException("No valid draw exists for the current roster and exclusions.")


@santa_cli.command("draw")
@click.option("--dry-run", is_flag=True, help="Print the mails instead of sending them.")
@click.option("--seed", type=int, default=None, help="Seed the random generator.")
@click.option("--max-attempts", type=click.IntRange(min=0), default=None,
              help="Give up after this many attempts (0 = never).")
@click.option("--keep-going", is_flag=True, help="Keep sending after a failed delivery.")
@click.option("--hide", is_flag=True, help="Do not print who drew whom.")
def draw(dry_run, seed, max_attempts, keep_going, hide):
    """Draw assignments and mail every giver."""

    def report(giver, recipient):
        click.echo(f"Notified {giver}" if hide else f"{giver} -> {recipient}")

    try:
        _, delivery = run_and_notify(
            transport=ConsoleTransport() if dry_run else None,
            rng=random.Random(seed) if seed is not None else None,
            max_attempts=max_attempts,
            abort_on_failure=False if keep_going else None,
            on_sent=report,
        )
    except (AssignmentError, ValueError) as e:
        raise click.ClickException(str(e))
    except DeliveryError as e:
        raise click.ClickException(f"{e} Aborting.")

    if not delivery.ok:
        raise click.ClickException(f"Delivery failed for: {', '.join(delivery.failed)}")
    click.echo(f"Sent {len(delivery.sent)} assignment(s).")
