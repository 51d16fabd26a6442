"""Tests de la configuration pydantic-settings."""

import pytest
from pydantic import ValidationError

from src.config import Settings
from src.utils.constants import ANIDB, TMDB, TVDB, TVMAZE


def make_settings(**kwargs) -> Settings:
    return Settings(_env_file=None, **kwargs)


class TestSettings:
    """Chargement et validation."""

    def test_defaults(self) -> None:
        settings = make_settings()

        assert settings.tmdb_api_key is None
        assert settings.title_fallback is True
        assert settings.fallback_language == "en"
        assert settings.anidb_rate_capacity == 1
        assert settings.anidb_rate_window == 2.0
        assert settings.tmdb_enabled is False
        assert settings.tvdb_enabled is False
        assert settings.anidb_enabled is False

    def test_environment_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("METARESOLVER_TVDB_API_KEY", "env-key")
        monkeypatch.setenv("METARESOLVER_TITLE_FALLBACK", "false")

        settings = make_settings()

        assert settings.tvdb_api_key == "env-key"
        assert settings.tvdb_enabled is True
        assert settings.title_fallback is False

    def test_fallback_language_normalized(self) -> None:
        assert make_settings(fallback_language=" DE ").fallback_language == "de"

    def test_log_file_expanded(self) -> None:
        settings = make_settings(log_file="~/metaresolver.log")

        assert "~" not in str(settings.log_file)

    def test_negative_rate_rejected(self) -> None:
        with pytest.raises(ValidationError):
            make_settings(anidb_rate_window=-1)


class TestProviderConfig:
    """Configuration en lecture seule par fournisseur."""

    def test_credentials_mapped(self) -> None:
        settings = make_settings(tmdb_api_key="k1", tvdb_api_key="k2", anidb_client="myclient")

        assert settings.provider_config(TMDB).api_key == "k1"
        assert settings.provider_config(TVDB).api_key == "k2"
        assert settings.provider_config(ANIDB).api_key == "myclient"

    def test_tvmaze_always_enabled(self) -> None:
        config = make_settings().provider_config(TVMAZE)

        assert config.requires_api_key is False
        assert config.enabled is True

    def test_missing_credential_disables(self) -> None:
        assert make_settings().provider_config(TVDB).enabled is False

    def test_fallback_shared(self) -> None:
        settings = make_settings(title_fallback=False, fallback_language="de")

        config = settings.provider_config(TMDB)

        assert config.title_fallback is False
        assert config.fallback_language == "de"

    def test_anidb_tag_settings(self) -> None:
        settings = make_settings(anidb_number_of_tags=3, anidb_minimum_tags_weight=400)

        config = settings.provider_config(ANIDB)

        assert config.number_of_tags == 3
        assert config.minimum_tags_weight == 400

    def test_unknown_provider(self) -> None:
        with pytest.raises(ValueError, match="unknown provider"):
            make_settings().provider_config("imdb")
