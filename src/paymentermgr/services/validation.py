"""Operator input validation and endpoint probing for paymentermgr."""

import ipaddress
import re

import requests

from paymentermgr.constants import MIN_PASSWORD_LENGTH
from paymentermgr.errors import ManagerError
from paymentermgr.models import StepResult

_DOMAIN_PATTERN = re.compile(
    r"^(?=.{1,253}$)(?!-)[A-Za-z0-9-]{1,63}(?<!-)(\.(?!-)[A-Za-z0-9-]{1,63}(?<!-))*\.[A-Za-z]{2,63}$"
)


class ValidationService:
    """Validates credentials and server names, probes the installed endpoint."""

    def __init__(self, requests_module=requests, min_password_length: int = MIN_PASSWORD_LENGTH):
        self.requests = requests_module
        self.min_password_length = min_password_length

    def validate_password(self, password: str, confirmation: str):
        if password != confirmation:
            raise ManagerError("Passwords do not match")
        if len(password) < self.min_password_length:
            raise ManagerError(
                f"Password must be at least {self.min_password_length} characters long"
            )
        if "'" in password or "\\" in password or "\n" in password:
            raise ManagerError("Password must not contain quotes, backslashes or newlines")

    def is_ipv4(self, value: str) -> bool:
        try:
            ipaddress.IPv4Address(value)
        except ValueError:
            return False
        return True

    def validate_domain(self, domain: str) -> str:
        clean = domain.strip().lower().rstrip(".")
        if not _DOMAIN_PATTERN.match(clean):
            raise ManagerError(f"Invalid domain name: {domain!r}")
        return clean

    def validate_server_name(self, server_name: str) -> str:
        if self.is_ipv4(server_name.strip()):
            return server_name.strip()
        return self.validate_domain(server_name)

    def probe_url(self, url: str, timeout: float = 15.0) -> StepResult:
        """Any answer below 500 counts as reachable; the app may redirect or ask for login."""
        try:
            response = self.requests.request("GET", url, allow_redirects=True, timeout=timeout)
            status_code = response.status_code
            response.close()
        except self.requests.RequestException as exc:
            return StepResult.failure(f"{url} is not reachable: {exc}")

        if status_code >= 500:
            return StepResult.failure(f"{url} answered with HTTP {status_code}", exit_code=status_code)
        return StepResult.success(f"{url} answered with HTTP {status_code}")
