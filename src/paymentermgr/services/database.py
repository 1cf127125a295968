"""Database provisioning through the mysql command-line client."""

from typing import List, Tuple

from paymentermgr.models import DatabaseCredentials, StepResult


def quote_literal(value: str) -> str:
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def quote_identifier(value: str) -> str:
    return "`" + value.replace("`", "``") + "`"


class DatabaseService:
    """Creates and drops the application database and its user.

    Every statement is idempotent so provisioning can be re-run safely.
    """

    def __init__(self, runner, logger):
        self.runner = runner
        self.logger = logger

    def provision_statements(self, credentials: DatabaseCredentials) -> List[Tuple[str, str]]:
        account = f"{quote_literal(credentials.username)}@{quote_literal(credentials.host)}"
        database = quote_identifier(credentials.database)
        return [
            (
                "create database user",
                f"CREATE USER IF NOT EXISTS {account} IDENTIFIED BY {quote_literal(credentials.password)};",
            ),
            ("create database", f"CREATE DATABASE IF NOT EXISTS {database};"),
            ("grant privileges", f"GRANT ALL PRIVILEGES ON {database}.* TO {account} WITH GRANT OPTION;"),
            ("flush privileges", "FLUSH PRIVILEGES;"),
        ]

    def drop_statements(self, credentials: DatabaseCredentials) -> List[Tuple[str, str]]:
        account = f"{quote_literal(credentials.username)}@{quote_literal(credentials.host)}"
        return [
            ("drop database", f"DROP DATABASE IF EXISTS {quote_identifier(credentials.database)};"),
            ("drop database user", f"DROP USER IF EXISTS {account};"),
        ]

    def execute(self, sql: str) -> StepResult:
        # Fed on stdin, never on the command line.
        return self.runner.run(["mysql"], input_text=sql)

    def provision(self, credentials: DatabaseCredentials) -> StepResult:
        result = self._execute_all(self.provision_statements(credentials))
        if result.ok:
            return StepResult.success("Database configured successfully")
        return result

    def drop(self, credentials: DatabaseCredentials) -> StepResult:
        result = self._execute_all(self.drop_statements(credentials))
        if result.ok:
            return StepResult.success(f"Database {credentials.database} and its user removed")
        return result

    def dump(self, database: str, dump_path: str) -> StepResult:
        return self.runner.run(["mysqldump", database], stdout_path=dump_path)

    def _execute_all(self, statements: List[Tuple[str, str]]) -> StepResult:
        for label, sql in statements:
            result = self.execute(sql)
            if not result.ok:
                return StepResult.failure(f"Failed to {label}: {result.message}", result.exit_code)
        return StepResult.success()
