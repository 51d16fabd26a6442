"""
Taxonomie fermee des erreurs de resolution de metadonnees.

Toutes les erreurs remontees par les fournisseurs sont des ScrapeError
portant un ErrorKind. Les appelants filtrent sur le kind (match/case)
plutot que sur une hierarchie de classes:

    try:
        record = provider.get_metadata(options)
    except ScrapeError as e:
        match e.kind:
            case ErrorKind.MISSING_IDENTIFIER: ...
            case ErrorKind.NOTHING_FOUND: ...
            case ErrorKind.TRANSPORT: ...
            case ErrorKind.FEATURE_DISABLED: ...

ScrapeCancelled est a part: ce n'est pas une erreur du fournisseur mais
le signal d'annulation cooperative de l'appelant.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Nature d'un echec de resolution."""

    MISSING_IDENTIFIER = "missing_identifier"
    NOTHING_FOUND = "nothing_found"
    TRANSPORT = "transport"
    FEATURE_DISABLED = "feature_disabled"


class ScrapeError(Exception):
    """
    Echec type d'une operation de fournisseur.

    Attributes:
        kind: Nature de l'erreur (ensemble ferme)
        message: Description lisible
        status_code: Code HTTP pour les erreurs de transport (sinon None)
        provider_id: Fournisseur a l'origine de l'erreur
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str = "",
        status_code: Optional[int] = None,
        provider_id: str = "",
    ) -> None:
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.provider_id = provider_id
        super().__init__(self._format())

    def _format(self) -> str:
        parts = [self.kind.value]
        if self.provider_id:
            parts.append(f"[{self.provider_id}]")
        if self.status_code is not None:
            parts.append(f"HTTP {self.status_code}")
        if self.message:
            parts.append(self.message)
        return " ".join(parts)

    @property
    def is_not_found(self) -> bool:
        """Vrai pour NOTHING_FOUND ou pour un 404 de transport."""
        return self.kind is ErrorKind.NOTHING_FOUND or (
            self.kind is ErrorKind.TRANSPORT and self.status_code == 404
        )


def missing_identifier(*namespaces: str, provider_id: str = "") -> ScrapeError:
    """Construit une erreur MISSING_IDENTIFIER listant les namespaces attendus."""
    wanted = ", ".join(namespaces) if namespaces else "id"
    return ScrapeError(
        ErrorKind.MISSING_IDENTIFIER, f"no usable id ({wanted})", provider_id=provider_id
    )


def nothing_found(message: str = "", provider_id: str = "") -> ScrapeError:
    return ScrapeError(ErrorKind.NOTHING_FOUND, message, provider_id=provider_id)


def feature_disabled(provider_id: str) -> ScrapeError:
    return ScrapeError(
        ErrorKind.FEATURE_DISABLED,
        "provider is not enabled (missing credential)",
        provider_id=provider_id,
    )


def transport_error(
    message: str, status_code: Optional[int] = None, provider_id: str = ""
) -> ScrapeError:
    return ScrapeError(
        ErrorKind.TRANSPORT, message, status_code=status_code, provider_id=provider_id
    )


class ScrapeCancelled(Exception):
    """L'appelant a annule la requete pendant une attente (rate limiter, reseau)."""
