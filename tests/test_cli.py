from santamail.services import assignments

from .conftest import RecordingTransport


def invoke(runner, *args):
    return runner.invoke(args=["santa", *args])


def seed_roster(runner):
    for name in ("Alice", "Bob", "Carol", "Dave"):
        result = invoke(runner, "add", name, f"{name.lower()}@example.com")
        assert result.exit_code == 0, result.output
    assert invoke(runner, "exclude", "Alice", "Bob").exit_code == 0


def test_init_db(runner):
    result = invoke(runner, "init-db")
    assert result.exit_code == 0
    assert "initialised" in result.output


def test_add_and_list(runner):
    seed_roster(runner)
    result = invoke(runner, "list")
    assert result.exit_code == 0
    assert "Participants (4):" in result.output
    assert "Alice <alice@example.com>" in result.output
    assert "Alice <-> Bob" in result.output


def test_list_empty(runner):
    assert "No participants yet." in invoke(runner, "list").output


def test_add_duplicate_fails(runner):
    seed_roster(runner)
    result = invoke(runner, "add", "Alice", "another@example.com")
    assert result.exit_code == 1
    assert "already registered" in result.output


def test_allow_and_remove(runner):
    seed_roster(runner)
    assert invoke(runner, "allow", "Bob", "Alice").exit_code == 0
    assert "<->" not in invoke(runner, "list").output

    assert invoke(runner, "remove", "Dave").exit_code == 0
    assert invoke(runner, "remove", "Dave").exit_code == 1


def test_check(runner):
    seed_roster(runner)
    assert invoke(runner, "check").exit_code == 0

    invoke(runner, "exclude", "Alice", "Carol")
    invoke(runner, "exclude", "Alice", "Dave")
    result = invoke(runner, "check")
    assert result.exit_code == 1
    assert "No valid draw" in result.output


def test_draw_dry_run(runner):
    seed_roster(runner)
    result = invoke(runner, "draw", "--dry-run", "--seed", "3")
    assert result.exit_code == 0, result.output
    assert result.output.count(" -> ") == 4
    assert "Alice -> Bob" not in result.output
    assert "Get a gift for" in result.output
    assert "Sent 4 assignment(s)." in result.output


def test_draw_hide(runner, monkeypatch):
    seed_roster(runner)
    transport = RecordingTransport()
    monkeypatch.setattr(assignments, "transport_from_config", lambda config: transport)
    result = invoke(runner, "draw", "--hide")
    assert result.exit_code == 0, result.output
    assert " -> " not in result.output
    assert "Notified Alice" in result.output
    assert len(transport.sent) == 4


def test_draw_needs_two_people(runner):
    invoke(runner, "add", "Solo", "solo@example.com")
    result = invoke(runner, "draw", "--dry-run")
    assert result.exit_code == 1
    assert "at least 2" in result.output


def test_draw_aborts_on_delivery_failure(runner, monkeypatch):
    seed_roster(runner)
    monkeypatch.setattr(
        assignments, "transport_from_config",
        lambda config: RecordingTransport(fail_for={"carol@example.com"}),
    )
    result = invoke(runner, "draw")
    assert result.exit_code == 1
    assert "Aborting" in result.output


def test_draw_keep_going_still_fails(runner, monkeypatch):
    seed_roster(runner)
    transport = RecordingTransport(fail_for={"carol@example.com"})
    monkeypatch.setattr(assignments, "transport_from_config", lambda config: transport)
    result = invoke(runner, "draw", "--keep-going")
    assert result.exit_code == 1
    assert "Delivery failed for: Carol" in result.output
    assert len(transport.sent) == 3


def test_draw_with_bad_body_template(app, runner, monkeypatch):
    seed_roster(runner)
    app.config["SANTA_MAIL_BODY"] = "Hi {name}, buy for {recipient}"
    transport = RecordingTransport()
    monkeypatch.setattr(assignments, "transport_from_config", lambda config: transport)

    result = invoke(runner, "draw")
    assert result.exit_code == 1
    assert not isinstance(result.exception, KeyError)
    assert "Invalid SANTA_MAIL_BODY" in result.output
    assert transport.sent == []
