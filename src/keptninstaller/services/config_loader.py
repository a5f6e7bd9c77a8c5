"""Configuration loader for the keptn installer."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from keptninstaller.errors import InstallerError


class ConfigLoader:
    """Loads `.keptninstaller.yml` files that provide defaults for CLI options."""

    STRING_KEYS = {"creds", "keptn_version", "keptn_dir", "log_file"}
    BOOLEAN_KEYS = {"verbose", "dry_run"}
    NUMERIC_KEYS = {
        "poll_interval_seconds",
        "readiness_max_attempts",
        "endpoint_max_attempts",
        "backoff_factor",
        "endpoint_notice_every",
        "command_timeout",
    }
    SUPPORTED_KEYS = STRING_KEYS | BOOLEAN_KEYS | NUMERIC_KEYS

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise InstallerError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise InstallerError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise InstallerError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise InstallerError(f"Unknown configuration keys: {unknown_list}")

        self._validate_types(parsed, config_path)
        return parsed

    def _validate_types(self, parsed: Dict[str, Any], config_path: str):
        for key, value in parsed.items():
            if value is None:
                continue
            if key in self.BOOLEAN_KEYS and not isinstance(value, bool):
                raise InstallerError(f"'{key}' in '{config_path}' must be true or false.")
            if key in self.NUMERIC_KEYS:
                if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                    raise InstallerError(
                        f"'{key}' in '{config_path}' must be a non-negative number."
                    )
            if key in self.STRING_KEYS and not isinstance(value, str):
                raise InstallerError(f"'{key}' in '{config_path}' must be a string.")
