import pytest

from santamail import create_app
from santamail.extensions import db
from santamail.services import roster


class RecordingTransport:
    """Collects messages; sends to addresses in fail_for report failure."""

    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    def send(self, message):
        if any(addr in message["To"] for addr in self.fail_for):
            return False
        self.sent.append(message)
        return True


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "SANTA_MAIL_TRANSPORT": "console",
        "SANTA_MAIL_FROM": "Secret Santa <santa@example.com>",
        "SANTA_MAIL_REPLY_TO": "Santa's Helper <helper@example.com>",
        "SANTA_RANDOM_SEED": None,
        "SANTA_MAX_ATTEMPTS": 10000,
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


@pytest.fixture
def family(ctx):
    for name in ("Alice", "Bob", "Carol", "Dave"):
        roster.add_participant(name, f"{name.lower()}@example.com")
    roster.add_exclusion("Alice", "Bob")


@pytest.fixture
def transport():
    return RecordingTransport()
