"""Tests for application configuration settings."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from uploader.core.config import Settings


class TestDefaults:
    """Default values match the historical service."""

    def test_should_default_to_files_directory_and_sha1(self) -> None:
        settings = Settings(_env_file=None)

        assert settings.FILES_DIR == Path("files")
        assert settings.jobs_dir == Path("files") / "tmp"
        assert settings.HASH_ALGORITHM == "sha1"
        assert settings.PORT == 10443

    def test_should_verify_tls_by_default(self) -> None:
        assert Settings(_env_file=None).DOWNLOAD_VERIFY_TLS is True

    def test_should_disable_auth_without_credentials(self) -> None:
        settings = Settings(_env_file=None, SECRET_USER=None, SECRET_PASSWORD=None)

        assert settings.auth_enabled is False


class TestEnvironmentOverrides:
    """Settings are read from the environment."""

    def test_should_override_download_settings_via_environment(self) -> None:
        env = {
            "DOWNLOAD_VERIFY_TLS": "false",
            "DOWNLOAD_TIMEOUT": "2.5",
            "FILES_DIR": "/srv/files",
        }
        with patch.dict(os.environ, env):
            settings = Settings(_env_file=None)

        assert settings.DOWNLOAD_VERIFY_TLS is False
        assert settings.DOWNLOAD_TIMEOUT == 2.5
        assert settings.jobs_dir == Path("/srv/files/tmp")

    def test_should_enable_auth_when_both_credentials_set(self) -> None:
        with patch.dict(os.environ, {"SECRET_USER": "u", "SECRET_PASSWORD": "p"}):
            settings = Settings(_env_file=None)

        assert settings.auth_enabled is True

    def test_should_require_both_credentials(self) -> None:
        settings = Settings(_env_file=None, SECRET_USER="u", SECRET_PASSWORD=None)

        assert settings.auth_enabled is False


class TestValidation:
    """Invalid values are rejected at load time."""

    def test_should_normalize_hash_algorithm(self) -> None:
        assert Settings(_env_file=None, HASH_ALGORITHM="SHA256").HASH_ALGORITHM == (
            "sha256"
        )

    @pytest.mark.parametrize("algorithm", ["nope", "shake_128"])
    def test_should_reject_unusable_hash_algorithms(self, algorithm: str) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, HASH_ALGORITHM=algorithm)

    def test_should_reject_non_positive_timeout(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, DOWNLOAD_TIMEOUT=0)

    def test_should_reject_unknown_log_level(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, LOG_LEVEL="loud")
