import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from s3ctl.core.errors import ConfigError
from s3ctl.core.models import SignatureVersion, StorageConfig

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "S3CTL_CONFIG"
DEFAULT_CONFIG_NAME = ".s3ctl.json"

DEFAULT_SERVICES = {
    "default": {
        "endpoint": "play.min.io",
        "access_key_id": "THISISKEYID",
        "secret_access_key": "THISISSECRETKEY",
        "use_ssl": True,
        "signature_version": "v4",
    },
    "example": {
        "endpoint": "s3.example.com",
        "access_key_id": "EXAMPLEKEYID",
        "secret_access_key": "EXAMPLESECRETKEY",
        "use_ssl": True,
        "signature_version": "v4",
    },
}


def default_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / DEFAULT_CONFIG_NAME


def mask_secret(secret: str) -> str:
    """Keeps the first and last two characters of a secret."""
    if len(secret) <= 4:
        return "****"
    return secret[:2] + "*" * (len(secret) - 4) + secret[-2:]


def describe_problem(error: Exception) -> str:
    if isinstance(error, KeyError):
        return f"missing setting {error}"
    return str(error)


@dataclass
class ProfileFile:
    """The parsed profile file: the selected name plus every service."""

    current: str = ""
    services: dict[str, StorageConfig] = field(default_factory=dict)
    invalid: dict[str, str] = field(default_factory=dict)

    def select(self, name: str | None = None) -> StorageConfig:
        """
        Picks the profile to use: the explicit name, then ``current``, then
        the first profile in the file. A named or current profile that failed
        to parse is an error, never a reason to fall back to another one.
        """
        if name:
            self._check_valid(name)
            if name not in self.services:
                raise ConfigError(
                    f"profile '{name}' does not exist, see 's3ctl config list'",
                    operation="select profile",
                )
            return self.services[name]

        if self.current:
            self._check_valid(self.current)
        if self.current in self.services:
            return self.services[self.current]

        for profile in self.services.values():
            return profile

        raise ConfigError(
            "no profiles configured, run 's3ctl config init'",
            operation="select profile",
        )

    def _check_valid(self, name: str) -> None:
        if name in self.invalid:
            raise ConfigError(
                f"profile '{name}' is invalid: {self.invalid[name]}",
                operation="select profile",
            )


class ConfigStore:
    """JSON-backed persistence for connection profiles."""

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path is not None else default_config_path()

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> ProfileFile:
        if not self.path.exists():
            raise ConfigError(
                "config file not found, run 's3ctl config init' to create one",
                operation="load config",
                target=str(self.path),
            )
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(str(e), "load config", str(self.path)) from e

        if not isinstance(data, dict):
            raise ConfigError("expected a JSON object", "load config", str(self.path))

        services: dict[str, StorageConfig] = {}
        invalid: dict[str, str] = {}
        for name, entry in (data.get("services") or {}).items():
            try:
                services[name] = self._parse_service(name, entry)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping invalid profile %s: %s", name, e)
                invalid[name] = describe_problem(e)

        return ProfileFile(
            current=data.get("current") or "", services=services, invalid=invalid
        )

    def use(self, name: str) -> None:
        self.load().select(name)
        data = json.loads(self.path.read_text(encoding="utf-8"))
        data["current"] = name
        self._write(data)

    def create_default(self) -> bool:
        """
        Writes a template config file. Returns False, leaving the file
        untouched, when it already exists.
        """
        if self.path.exists():
            return False
        self._write({"current": "default", "services": DEFAULT_SERVICES})
        return True

    @staticmethod
    def _parse_service(name: str, entry: dict[str, Any]) -> StorageConfig:
        return StorageConfig(
            name=name,
            endpoint=entry["endpoint"],
            access_key_id=entry["access_key_id"],
            secret_access_key=entry.get("secret_access_key", ""),
            use_ssl=bool(entry.get("use_ssl", True)),
            signature_version=SignatureVersion(
                str(entry.get("signature_version", "v4")).lower()
            ),
            region=entry.get("region") or "us-east-1",
        )

    def _write(self, data: dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as e:
            raise ConfigError(str(e), "write config", str(self.path)) from e
