"""Configuration loader for windowsdomain."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from windowsdomain.errors import WindowsDomainError
from windowsdomain.models import JoinOptions


class ConfigLoader:
    """Loads YAML configuration files for CLI defaults."""

    SUPPORTED_KEYS = {
        "domain",
        "computer_name",
        "username",
        "password",
        "join_options",
        "host",
        "port",
        "transport",
        "guest_username",
        "guest_password",
        "ssl",
        "verify_ssl",
        "verbose",
        "log_file",
    }

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise WindowsDomainError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise WindowsDomainError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise WindowsDomainError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise WindowsDomainError(f"Unknown configuration keys: {unknown_list}")

        if "join_options" in parsed:
            parsed["join_options"] = self.normalize_join_options(parsed["join_options"])

        return parsed

    @staticmethod
    def normalize_join_options(raw) -> JoinOptions:
        if raw is None:
            return ()

        if isinstance(raw, dict):
            items = list(raw.items())
        elif isinstance(raw, list):
            items = []
            for entry in raw:
                if isinstance(entry, str):
                    items.append((entry, None))
                elif isinstance(entry, (list, tuple)) and 1 <= len(entry) <= 2:
                    items.append((entry[0], entry[1] if len(entry) == 2 else None))
                else:
                    raise WindowsDomainError(
                        "join_options entries must be a key or a [key, value] pair."
                    )
        else:
            raise WindowsDomainError("join_options must be a mapping or a list.")

        return tuple(
            (str(key), None if value is None else str(value)) for key, value in items
        )
