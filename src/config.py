"""
Configuration de l'application via pydantic-settings.

La configuration est chargée depuis les variables d'environnement avec le préfixe
METARESOLVER_, et peut optionnellement être fournie via un fichier .env.

Les credentials (TMDB, TVDB, AniDB) sont optionnels - un fournisseur sans
credential échoue en FEATURE_DISABLED avant tout appel réseau.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.value_objects.options import ProviderConfig
from src.utils.constants import (
    ANIDB,
    ANIDB_RATE_CAPACITY,
    ANIDB_RATE_WINDOW,
    CACHE_MAX_ENTRIES,
    CACHE_TTL_SECONDS,
    TMDB,
    TVDB,
    TVMAZE,
)

# Trouver le fichier .env à la racine du projet (parent de src/)
_PROJECT_ROOT = Path(__file__).parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Paramètres de l'application avec support des variables d'environnement.

    Tous les paramètres peuvent être surchargés via des variables d'environnement
    avec le préfixe METARESOLVER_.
    Exemple : METARESOLVER_FALLBACK_LANGUAGE=de

    Le moteur traite ces valeurs en lecture seule.
    """

    model_config = SettingsConfigDict(
        env_prefix="METARESOLVER_",
        env_file=_ENV_FILE if _ENV_FILE.exists() else ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Credentials (OPTIONNELS - fournisseur désactivé si non défini)
    tmdb_api_key: Optional[str] = Field(default=None)
    tvdb_api_key: Optional[str] = Field(default=None)
    anidb_client: Optional[str] = Field(default=None)
    anidb_client_version: int = Field(default=1, ge=1)

    # Repli de langue sur titre/synopsis
    title_fallback: bool = Field(default=True)
    fallback_language: str = Field(default="en", min_length=2)

    # Tags AniDB
    anidb_number_of_tags: int = Field(default=10, ge=0)
    anidb_minimum_tags_weight: int = Field(default=200, ge=0)

    # Rate limiting par fournisseur (requêtes par fenêtre, fenêtre en secondes)
    anidb_rate_capacity: int = Field(default=ANIDB_RATE_CAPACITY, ge=0)
    anidb_rate_window: float = Field(default=ANIDB_RATE_WINDOW, ge=0)
    tvmaze_rate_capacity: int = Field(default=20, ge=0)
    tvmaze_rate_window: float = Field(default=10.0, ge=0)
    tmdb_rate_capacity: int = Field(default=0, ge=0)
    tmdb_rate_window: float = Field(default=1.0, ge=0)
    tvdb_rate_capacity: int = Field(default=0, ge=0)
    tvdb_rate_window: float = Field(default=1.0, ge=0)

    # Cache en mémoire des listes d'épisodes
    cache_max_entries: int = Field(default=CACHE_MAX_ENTRIES, ge=0)
    cache_ttl_seconds: float = Field(default=CACHE_TTL_SECONDS, ge=0)

    # HTTP
    http_timeout: float = Field(default=30.0, gt=0)

    # Logging (fichier + stderr, rotation 10MB, 5 fichiers de rétention)
    log_level: str = Field(default="INFO")
    log_file: Path = Field(default=Path("logs/metaresolver.log"))
    log_rotation_size: str = Field(default="10 MB")
    log_retention_count: int = Field(default=5)

    @field_validator("log_file", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        """Étend ~ vers le répertoire home dans les chemins."""
        return Path(v).expanduser()

    @field_validator("fallback_language", mode="before")
    @classmethod
    def normalize_language(cls, v: str) -> str:
        """Code langue ISO 639-1 en minuscules."""
        return str(v).strip().lower()

    @property
    def tmdb_enabled(self) -> bool:
        """Vérifie si l'API TMDB est configurée."""
        return bool(self.tmdb_api_key)

    @property
    def tvdb_enabled(self) -> bool:
        """Vérifie si l'API TVDB est configurée."""
        return bool(self.tvdb_api_key)

    @property
    def anidb_enabled(self) -> bool:
        """Vérifie si un client AniDB est enregistré."""
        return bool(self.anidb_client)

    def provider_config(self, provider_id: str) -> ProviderConfig:
        """Construit la configuration en lecture seule d'un fournisseur."""
        common = {
            "title_fallback": self.title_fallback,
            "fallback_language": self.fallback_language,
        }
        if provider_id == TMDB:
            return ProviderConfig(TMDB, "The Movie Database", api_key=self.tmdb_api_key, **common)
        if provider_id == TVDB:
            return ProviderConfig(TVDB, "TheTVDB", api_key=self.tvdb_api_key, **common)
        if provider_id == TVMAZE:
            return ProviderConfig(TVMAZE, "TVmaze", requires_api_key=False, **common)
        if provider_id == ANIDB:
            return ProviderConfig(
                ANIDB,
                "AniDB",
                api_key=self.anidb_client,
                number_of_tags=self.anidb_number_of_tags,
                minimum_tags_weight=self.anidb_minimum_tags_weight,
                **common,
            )
        raise ValueError(f"unknown provider: {provider_id}")
