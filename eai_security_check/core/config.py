"""
Declarative security configuration.

Every section of ``SecurityConfig`` is optional. A missing section means the
category is not evaluated at all; it never counts as a failing check.
"""

import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .errors import ConfigError
from .logging_config import get_logger

logger = get_logger(__name__)

# Older configuration files used the macOS feature names
LEGACY_SECTION_KEYS = {
    "filevault": "diskEncryption",
    "gatekeeper": "packageVerification",
}


class ConfigSection(BaseModel):
    """Base for configuration sections: camelCase or snake_case keys, immutable."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )


class EnabledSection(ConfigSection):
    enabled: bool


class DiskEncryptionConfig(EnabledSection):
    pass


class PasswordProtectionConfig(EnabledSection):
    require_password_immediately: Optional[bool] = None


class PasswordPolicyConfig(ConfigSection):
    """Password strength and age policy."""

    required: bool
    min_length: int = Field(default=8, ge=0)
    require_uppercase: bool = False
    require_lowercase: bool = False
    require_number: bool = False
    require_special_char: bool = False
    max_age_days: int = Field(default=180, ge=0)

    def describe_requirements(self) -> str:
        """Human readable list of the strength requirements."""
        requirements = []
        if self.min_length > 0:
            requirements.append(f"{self.min_length}+ characters")

        char_types = []
        if self.require_uppercase:
            char_types.append("uppercase")
        if self.require_lowercase:
            char_types.append("lowercase")
        if self.require_number:
            char_types.append("number")
        if self.require_special_char:
            char_types.append("special character")

        if char_types:
            requirements.append(f"with {', '.join(char_types)}")
        elif self.min_length > 0:
            requirements.append("(any characters allowed)")

        return " ".join(requirements)


class AutoLockConfig(ConfigSection):
    max_timeout_minutes: int = Field(ge=0)


class FirewallConfig(EnabledSection):
    stealth_mode: Optional[bool] = None


class PackageVerificationConfig(EnabledSection):
    pass


class SystemIntegrityConfig(EnabledSection):
    pass


class RemoteLoginConfig(EnabledSection):
    pass


class RemoteManagementConfig(EnabledSection):
    pass


class AutomaticUpdatesConfig(EnabledSection):
    download_only: Optional[bool] = None
    automatic_install: Optional[bool] = None
    security_updates_only: Optional[bool] = None
    automatic_security_install: Optional[bool] = None


class SharingServicesConfig(ConfigSection):
    file_sharing: Optional[bool] = None
    screen_sharing: Optional[bool] = None
    remote_login: Optional[bool] = None


class OSVersionConfig(ConfigSection):
    target_version: str

    @field_validator("target_version")
    @classmethod
    def _check_target(cls, value: str) -> str:
        value = value.strip()
        if value.lower() != "latest" and not re.match(r"^\d+(\.\d+)*$", value):
            raise ValueError("must be 'latest' or a dotted numeric version")
        return value

    @property
    def is_latest(self) -> bool:
        return self.target_version.strip().lower() == "latest"


class WifiSecurityConfig(ConfigSection):
    banned_networks: List[str] = []


class InstalledAppsConfig(ConfigSection):
    banned_applications: List[str] = []


class SecurityConfig(ConfigSection):
    """
    A sparse security configuration.

    This is the declarative description of the expected security posture
    that an audit run is evaluated against.
    """

    password: Optional[PasswordPolicyConfig] = None
    disk_encryption: Optional[DiskEncryptionConfig] = None
    password_protection: Optional[PasswordProtectionConfig] = None
    auto_lock: Optional[AutoLockConfig] = None
    firewall: Optional[FirewallConfig] = None
    package_verification: Optional[PackageVerificationConfig] = None
    system_integrity_protection: Optional[SystemIntegrityConfig] = None
    remote_login: Optional[RemoteLoginConfig] = None
    remote_management: Optional[RemoteManagementConfig] = None
    automatic_updates: Optional[AutomaticUpdatesConfig] = None
    sharing_services: Optional[SharingServicesConfig] = None
    os_version: Optional[OSVersionConfig] = None
    wifi_security: Optional[WifiSecurityConfig] = None
    installed_apps: Optional[InstalledAppsConfig] = None

    @model_validator(mode="before")
    @classmethod
    def _map_legacy_sections(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        data = dict(data)
        for legacy_key, current_key in LEGACY_SECTION_KEYS.items():
            if legacy_key not in data:
                continue
            snake_key = _to_snake(current_key)
            if current_key in data or snake_key in data:
                raise ValueError(
                    f"'{legacy_key}' and '{current_key}' cannot both be configured"
                )
            data[current_key] = data.pop(legacy_key)
        return data

    def configured_sections(self) -> List[str]:
        """Names (camelCase) of the sections present in this configuration."""
        return [
            field.alias or name
            for name, field in type(self).model_fields.items()
            if getattr(self, name) is not None
        ]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the camelCase keys of the configuration files."""
        return self.model_dump(by_alias=True, exclude_none=True)

    @classmethod
    def from_dict(
        cls, data: Any, source: Optional[str] = None
    ) -> "SecurityConfig":
        """Validate raw data, turning validation problems into ConfigError."""
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"configuration must be a mapping, got {type(data).__name__}", source
            )

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}"
                for err in e.errors()
            )
            raise ConfigError(f"invalid configuration ({problems})", source) from e

    @classmethod
    def from_yaml(cls, yaml_content: str, source: Optional[str] = None) -> "SecurityConfig":
        """Create configuration from YAML content."""
        try:
            data = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML: {e}", source) from e
        return cls.from_dict(data, source)

    @classmethod
    def from_json(cls, json_content: str, source: Optional[str] = None) -> "SecurityConfig":
        """Create configuration from JSON content."""
        try:
            data = json.loads(json_content)
        except json.JSONDecodeError as e:
            raise ConfigError(f"invalid JSON: {e}", source) from e
        return cls.from_dict(data, source)


def _to_snake(name: str) -> str:
    return "".join(f"_{c.lower()}" if c.isupper() else c for c in name)


def load_config(config_file: Union[str, Path]) -> SecurityConfig:
    """Load a security configuration from a YAML or JSON file."""
    config_file = Path(config_file)
    if not config_file.exists():
        raise ConfigError("configuration file not found", str(config_file))

    content = config_file.read_text(encoding="utf-8")
    suffix = config_file.suffix.lower()
    logger.debug("Loading security configuration from %s", config_file)

    if suffix in [".yaml", ".yml"]:
        return SecurityConfig.from_yaml(content, str(config_file))
    elif suffix == ".json":
        return SecurityConfig.from_json(content, str(config_file))
    else:
        raise ConfigError(
            f"unsupported configuration file format: {config_file.suffix}",
            str(config_file),
        )


def dump_config(config: SecurityConfig, fmt: str = "yaml") -> str:
    """Render a configuration in the on-disk format."""
    data = config.to_dict()
    if fmt == "yaml":
        return yaml.safe_dump(data, sort_keys=False)
    elif fmt == "json":
        return json.dumps(data, indent=2)
    else:
        raise ValueError(f"Unsupported configuration format: {fmt}")
