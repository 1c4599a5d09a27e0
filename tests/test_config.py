"""
Tests for eai_security_check.core.config and core.profiles modules.
"""

import json

import pytest
import yaml

from eai_security_check.core.config import (
    PasswordPolicyConfig,
    SecurityConfig,
    dump_config,
    load_config,
)
from eai_security_check.core.errors import ConfigError
from eai_security_check.core.profiles import (
    VALID_PROFILES,
    get_config_by_profile,
    is_valid_profile,
    list_profiles,
)


class TestSecurityConfig:
    """Test cases for SecurityConfig."""

    def test_empty_config(self):
        config = SecurityConfig.from_dict({})

        assert config.configured_sections() == []
        assert SecurityConfig.from_dict(None).configured_sections() == []

    def test_camel_and_snake_case_keys(self):
        camel = SecurityConfig.from_dict({"autoLock": {"maxTimeoutMinutes": 7}})
        snake = SecurityConfig.from_dict({"auto_lock": {"max_timeout_minutes": 7}})

        assert camel == snake
        assert camel.auto_lock.max_timeout_minutes == 7

    def test_optional_sub_fields_default_to_none(self):
        config = SecurityConfig.from_dict({"firewall": {"enabled": True}})

        assert config.firewall.stealth_mode is None

    def test_legacy_section_names(self):
        config = SecurityConfig.from_dict(
            {"filevault": {"enabled": True}, "gatekeeper": {"enabled": False}}
        )

        assert config.disk_encryption.enabled is True
        assert config.package_verification.enabled is False

    def test_legacy_and_current_name_conflict(self):
        with pytest.raises(ConfigError):
            SecurityConfig.from_dict(
                {"filevault": {"enabled": True}, "diskEncryption": {"enabled": True}}
            )

    @pytest.mark.parametrize(
        "data",
        [
            {"firewall": {"enabled": "maybe"}},
            {"unknownSection": {}},
            {"firewall": {"enabled": True, "color": "red"}},
            {"autoLock": {"maxTimeoutMinutes": -1}},
            {"osVersion": {"targetVersion": "newest"}},
        ],
    )
    def test_invalid_config(self, data):
        with pytest.raises(ConfigError):
            SecurityConfig.from_dict(data)

    def test_non_mapping_rejected(self):
        with pytest.raises(ConfigError):
            SecurityConfig.from_dict(["firewall"])

    def test_config_is_frozen(self):
        config = SecurityConfig.from_dict({"firewall": {"enabled": True}})

        with pytest.raises(Exception):
            config.firewall = None

    def test_os_version_latest(self):
        config = SecurityConfig.from_dict({"osVersion": {"targetVersion": " Latest "}})

        assert config.os_version.is_latest is True

    def test_to_dict_uses_camel_case(self):
        config = SecurityConfig.from_dict(
            {"passwordProtection": {"enabled": True, "requirePasswordImmediately": True}}
        )

        assert config.to_dict() == {
            "passwordProtection": {"enabled": True, "requirePasswordImmediately": True}
        }

    def test_describe_password_requirements(self):
        policy = PasswordPolicyConfig(
            required=True, min_length=10, require_uppercase=True, require_number=True
        )
        assert policy.describe_requirements() == "10+ characters with uppercase, number"

        policy = PasswordPolicyConfig(required=True)
        assert policy.describe_requirements() == "8+ characters (any characters allowed)"


class TestLoadConfig:
    """Test cases for loading configuration files."""

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "security-config.yaml"
        path.write_text(yaml.safe_dump({"firewall": {"enabled": True}}))

        assert load_config(path).firewall.enabled is True

    def test_load_json(self, tmp_path):
        path = tmp_path / "security-config.json"
        path.write_text(json.dumps({"remoteLogin": {"enabled": False}}))

        assert load_config(path).remote_login.enabled is False

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError) as excinfo:
            load_config(tmp_path / "missing.yaml")
        assert "not found" in str(excinfo.value)

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("")

        with pytest.raises(ConfigError):
            load_config(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("firewall: [enabled\n")

        with pytest.raises(ConfigError) as excinfo:
            load_config(path)
        assert excinfo.value.source == str(path)

    def test_dump_round_trip(self, tmp_path):
        config = get_config_by_profile("strict")

        for fmt, suffix in (("yaml", ".yaml"), ("json", ".json")):
            path = tmp_path / f"config{suffix}"
            path.write_text(dump_config(config, fmt))
            assert load_config(path) == config

    def test_dump_unknown_format(self):
        with pytest.raises(ValueError):
            dump_config(SecurityConfig(), "toml")


class TestProfiles:
    """Test cases for the built-in profiles."""

    @pytest.mark.parametrize("profile", VALID_PROFILES)
    def test_every_profile_is_valid(self, profile):
        config = get_config_by_profile(profile)

        assert config.disk_encryption.enabled is True
        assert config.configured_sections()

    def test_profile_differences(self):
        assert get_config_by_profile("strict").auto_lock.max_timeout_minutes == 3
        assert get_config_by_profile("relaxed").auto_lock.max_timeout_minutes == 15
        assert get_config_by_profile("developer").remote_login.enabled is True
        assert get_config_by_profile("eai").os_version.is_latest is True

    def test_invalid_profile(self):
        assert is_valid_profile("paranoid") is False
        with pytest.raises(ConfigError):
            get_config_by_profile("paranoid")

    def test_list_profiles(self):
        assert list_profiles() == VALID_PROFILES
