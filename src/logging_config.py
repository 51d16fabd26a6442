"""
Configuration du logging de l'application via loguru.

Fournit un logging structuré avec :
- Sortie console : lisible par l'humain, colorée, pour la surveillance en temps réel
- Sortie fichier : sérialisée en JSON, avec rotation, pour l'analyse historique

Les credentials des fournisseurs (api_key TMDB en paramètre d'URL, jetons
Bearer TVDB, nom de client AniDB) sont masqués avant écriture.
"""

import re
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

_CREDENTIAL_PATTERNS = (
    re.compile(r"(api_?key=)[^&\s\"']+", re.IGNORECASE),
    re.compile(r"(client=)[^&\s\"']+"),
    re.compile(r"(Bearer\s+)[A-Za-z0-9\-_.]+"),
)


def redact_credentials(text: str) -> str:
    """Masque les credentials connus dans un message de log."""
    for pattern in _CREDENTIAL_PATTERNS:
        text = pattern.sub(r"\1***", text)
    return text


def _patch_record(record: dict) -> None:
    record["message"] = redact_credentials(record["message"])
    for key, value in record["extra"].items():
        if isinstance(value, str):
            record["extra"][key] = redact_credentials(value)


def configure_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = Path("logs/metaresolver.log"),
    rotation_size: str = "10 MB",
    retention_count: int = 5,
) -> None:
    """Configure le logging de l'application.

    Args :
        log_level : Niveau de log minimum pour la sortie console (DEBUG, INFO, WARNING, ERROR)
        log_file : Chemin vers le fichier de log (None = console uniquement)
        rotation_size : Taille maximale du fichier avant rotation (ex: "10 MB", "1 GB")
        retention_count : Nombre de fichiers rotatifs à conserver

    Les appels aux fournisseurs sont journalisés en DEBUG : la console n'affiche
    que les erreurs par défaut, le fichier JSON garde tout.
    """
    # Supprime le handler par défaut
    logger.remove()
    logger.configure(patcher=_patch_record)

    # Handler console - lisible par l'humain
    logger.add(
        sys.stderr,
        level=log_level,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan> | "
            "<level>{message}</level> <dim>{extra}</dim>"
        ),
        colorize=True,
    )

    if log_file is None:
        return

    # Handler fichier - JSON pour l'analyse, appels concurrents depuis plusieurs threads
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        log_file,
        level="DEBUG",
        format="{message}",
        serialize=True,
        rotation=rotation_size,
        retention=retention_count,
        compression="zip",
        enqueue=True,
    )

    logger.debug("logging configured", log_file=str(log_file), rotation=rotation_size)
