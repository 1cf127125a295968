"""Host checks: privileges, OS release and IPv4 detection."""

import os
import re
import shlex
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence

from paymentermgr.errors import InsufficientPrivilegesError, UnsupportedPlatformError
from paymentermgr.errors_catalog import actionable_error

OS_RELEASE_PATH = "/etc/os-release"

_INET_PATTERN = re.compile(r"\binet\s+(\d{1,3}(?:\.\d{1,3}){3})")


@dataclass(frozen=True)
class PlatformInfo:
    id: str
    name: str
    version_id: str


def parse_os_release(text: str) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, raw = line.partition("=")
        try:
            parts = shlex.split(raw)
        except ValueError:
            parts = [raw.strip("\"'")]
        values[key.strip()] = parts[0] if parts else ""
    return values


class PlatformService:
    """Pre-flight checks against the host."""

    def __init__(self, logger, os_release_path: str = OS_RELEASE_PATH, geteuid=None):
        self.logger = logger
        self.os_release_path = os_release_path
        self._geteuid = geteuid or os.geteuid

    def ensure_root(self):
        if self._geteuid() != 0:
            raise InsufficientPrivilegesError(actionable_error("not_root"))

    def detect(self) -> PlatformInfo:
        try:
            with open(self.os_release_path, "r", encoding="utf-8") as file_obj:
                values = parse_os_release(file_obj.read())
        except OSError as exc:
            raise UnsupportedPlatformError(
                f"Could not read {self.os_release_path}: {exc}"
            ) from exc

        return PlatformInfo(
            id=values.get("ID", "").lower(),
            name=values.get("NAME", values.get("ID", "unknown")),
            version_id=values.get("VERSION_ID", ""),
        )

    def ensure_supported(self, supported: Mapping[str, Sequence[str]]) -> PlatformInfo:
        info = self.detect()
        supported_text = ", ".join(
            f"{name.capitalize()} {' / '.join(releases)}" for name, releases in supported.items()
        )
        self.logger.info("Detected: %s %s", info.name, info.version_id)

        if info.id not in supported:
            raise UnsupportedPlatformError(
                actionable_error("unsupported_os", name=info.name, supported=supported_text)
            )
        if info.version_id not in supported[info.id]:
            raise UnsupportedPlatformError(
                actionable_error(
                    "unsupported_release",
                    name=info.name,
                    version=info.version_id,
                    supported=supported_text,
                )
            )
        return info

    def detect_ipv4(self, runner) -> Optional[str]:
        """First non-loopback IPv4 address, as ``ip -4 addr show`` reports it."""
        result = runner.run(["ip", "-4", "addr", "show"])
        if not result.ok:
            return None
        for address in _INET_PATTERN.findall(result.output):
            if not address.startswith("127."):
                return address
        return None
