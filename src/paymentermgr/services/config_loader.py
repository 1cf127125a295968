"""Configuration loader for paymentermgr."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from paymentermgr.config import ManagerConfig
from paymentermgr.errors import ManagerError


class ConfigLoader:
    """Loads YAML configuration files over the built-in defaults."""

    SUPPORTED_KEYS = ManagerConfig.field_names()

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise ManagerError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise ManagerError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise ManagerError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise ManagerError(f"Unknown configuration keys: {unknown_list}")

        return parsed

    def build(self, config_path: Optional[str], **overrides: Any) -> ManagerConfig:
        values = self.load(config_path)
        values.update({key: value for key, value in overrides.items() if value is not None})
        try:
            return ManagerConfig.from_mapping(values)
        except TypeError as exc:
            raise ManagerError(f"Invalid configuration: {exc}") from exc
