from pathlib import Path

from paymentermgr.models import DatabaseCredentials, StepResult
from paymentermgr.services.database import DatabaseService, quote_identifier, quote_literal


class DummyLogger:
    def info(self, *_args, **_kwargs):
        return None


class FakeRunner:
    def __init__(self, fail_on=None):
        self.calls = []
        self.fail_on = fail_on

    def run(self, cmd, **kwargs):
        self.calls.append((cmd, kwargs))
        statement = kwargs.get("input_text") or ""
        if self.fail_on and self.fail_on in statement:
            return StepResult.failure("ERROR 1396", exit_code=1)
        if kwargs.get("stdout_path"):
            Path(kwargs["stdout_path"]).write_text("-- dump\n", encoding="utf-8")
        return StepResult.success()


CREDENTIALS = DatabaseCredentials(database="paymenter", username="paymenter", password="s3cret-pass")


def test_quoting_escapes_special_characters():
    assert quote_literal("o'brien") == "'o\\'brien'"
    assert quote_identifier("weird`name") == "`weird``name`"


def test_provision_feeds_idempotent_statements_on_stdin():
    runner = FakeRunner()
    service = DatabaseService(runner=runner, logger=DummyLogger())

    result = service.provision(CREDENTIALS)

    assert result.ok is True
    statements = [kwargs["input_text"] for _cmd, kwargs in runner.calls]
    assert all(cmd == ["mysql"] for cmd, _kwargs in runner.calls)
    assert statements[0].startswith("CREATE USER IF NOT EXISTS 'paymenter'@'127.0.0.1'")
    assert "CREATE DATABASE IF NOT EXISTS `paymenter`;" in statements
    assert statements[-1] == "FLUSH PRIVILEGES;"
    assert all("s3cret-pass" not in " ".join(cmd) for cmd, _kwargs in runner.calls)


def test_provision_stops_at_failing_statement():
    runner = FakeRunner(fail_on="GRANT")
    service = DatabaseService(runner=runner, logger=DummyLogger())

    result = service.provision(CREDENTIALS)

    assert result.ok is False
    assert "grant privileges" in result.message
    assert len(runner.calls) == 3


def test_drop_removes_database_and_user():
    runner = FakeRunner()
    service = DatabaseService(runner=runner, logger=DummyLogger())

    result = service.drop(CREDENTIALS)

    assert result.ok is True
    assert [kwargs["input_text"] for _cmd, kwargs in runner.calls] == [
        "DROP DATABASE IF EXISTS `paymenter`;",
        "DROP USER IF EXISTS 'paymenter'@'127.0.0.1';",
    ]


def test_dump_streams_to_file(tmp_path):
    runner = FakeRunner()
    service = DatabaseService(runner=runner, logger=DummyLogger())
    target = tmp_path / "dump.sql"

    result = service.dump("paymenter", str(target))

    assert result.ok is True
    assert runner.calls[0][0] == ["mysqldump", "paymenter"]
    assert target.read_text(encoding="utf-8") == "-- dump\n"
