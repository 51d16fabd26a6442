"""
Execution des requetes HTTP avec retry et classification des erreurs.

Gere automatiquement les erreurs 429 (rate limiting) en relancant
les requetes avec un delai croissant et du jitter aleatoire, puis
traduit toute autre reponse non-2xx en ScrapeError de type TRANSPORT.

Usage:
    # Avec le decorateur
    @with_retry(max_attempts=5, max_wait=60)
    def my_api_call():
        ...

    # Avec la fonction helper
    response = request_with_retry(client, "GET", url)

    # Avec l'executeur d'un fournisseur (rate limiter + auth + 401)
    executor = RetryingHttpExecutor(client, "tvdb", rate_limiter=limiter)
    data = executor.get_json("/series/81189")
"""

import threading
from typing import Any, Callable, Optional

import httpx
from loguru import logger
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from src.adapters.api.rate_limiter import RateLimiter
from src.core.errors import ScrapeCancelled, transport_error


class RateLimitError(Exception):
    """
    Exception levee quand l'API retourne 429 Too Many Requests.

    Attributes:
        retry_after: Nombre de secondes a attendre (depuis le header Retry-After),
                     ou None si non specifie.
        response: Derniere reponse 429 recue
    """

    def __init__(
        self, retry_after: Optional[int] = None, response: Optional[httpx.Response] = None
    ) -> None:
        self.retry_after = retry_after
        self.response = response
        super().__init__(f"Rate limited. Retry after: {retry_after}s")


def with_retry(max_attempts: int = 5, max_wait: int = 60):
    """
    Decorateur pour relancer sur RateLimitError avec backoff exponentiel.

    Utilise wait_random_exponential pour ajouter du jitter.

    Args:
        max_attempts: Nombre maximum de tentatives (defaut: 5)
        max_wait: Delai maximum entre les tentatives en secondes (defaut: 60)
    """
    return retry(
        retry=retry_if_exception_type(RateLimitError),
        wait=wait_random_exponential(multiplier=1, min=1, max=max_wait),
        stop=stop_after_attempt(max_attempts),
        reraise=True,
    )


def _retry_after(response: httpx.Response) -> Optional[int]:
    header = response.headers.get("Retry-After")
    if header and header.strip().isdigit():
        return int(header.strip())
    return None


def request_with_retry(
    client: httpx.Client,
    method: str,
    url: str,
    max_attempts: int = 5,
    max_wait: int = 60,
    before_request: Optional[Callable[[], None]] = None,
    **kwargs,
) -> httpx.Response:
    """
    Execute une requete HTTP avec retry automatique sur 429.

    Contrairement a raise_for_status, les autres codes HTTP sont retournes
    tels quels: la classification (401, 404, 5xx) est faite par l'appelant.

    Args:
        client: Client httpx a utiliser
        method: Methode HTTP (GET, POST, etc.)
        url: URL a appeler
        max_attempts: Nombre maximum de tentatives (defaut: 5)
        before_request: Appele avant chaque tentative, relances comprises
                        (ex: passage par le rate limiter)
        **kwargs: Arguments supplementaires passes a client.request()

    Raises:
        RateLimitError: Si 429 apres epuisement des tentatives
        httpx.HTTPError: Pour les erreurs reseau (timeout, connexion)
    """

    @with_retry(max_attempts=max_attempts, max_wait=max_wait)
    def _do_request() -> httpx.Response:
        if before_request is not None:
            before_request()
        response = client.request(method, url, **kwargs)
        if response.status_code == 429:
            raise RateLimitError(_retry_after(response), response)
        return response

    return _do_request()


class RetryingHttpExecutor:
    """
    Point de passage unique des requetes d'un fournisseur.

    Pour chaque requete:
    1. attend le rate limiter du fournisseur (s'il existe), a chaque
       tentative y compris les relances sur 429
    2. ajoute les en-tetes d'authentification courants
    3. relance sur 429 avec backoff (tenacity)
    4. sur 401, rafraichit le credential une seule fois et rejoue
    5. traduit tout autre non-2xx en ScrapeError TRANSPORT (avec le code)

    Les adaptateurs convertissent ensuite les 404 en "rien trouve"
    via ScrapeError.is_not_found.

    Args:
        client: Client httpx configure (base_url, timeout)
        provider_id: Identifiant du fournisseur (messages d'erreur, logs)
        rate_limiter: Limiteur propre au fournisseur
        auth: Fournit les en-tetes d'authentification (ex: Bearer JWT)
        refresh: Rafraichit le credential apres un 401
        error_body: Extrait un message d'erreur du corps d'une reponse
        max_attempts: Tentatives maximales sur 429
    """

    def __init__(
        self,
        client: httpx.Client,
        provider_id: str,
        rate_limiter: Optional[RateLimiter] = None,
        auth: Optional[Callable[[], dict[str, str]]] = None,
        refresh: Optional[Callable[[], None]] = None,
        error_body: Optional[Callable[[httpx.Response], Optional[str]]] = None,
        max_attempts: int = 5,
        max_wait: int = 60,
    ) -> None:
        self._client = client
        self._provider_id = provider_id
        self._rate_limiter = rate_limiter
        self._auth = auth
        self._refresh = refresh
        self._error_body = error_body
        self._max_attempts = max_attempts
        self._max_wait = max_wait

    @property
    def client(self) -> httpx.Client:
        return self._client

    def execute(
        self,
        method: str,
        url: str,
        cancel: Optional[threading.Event] = None,
        **kwargs,
    ) -> httpx.Response:
        """
        Execute une requete et retourne la reponse 2xx.

        Raises:
            ScrapeError: TRANSPORT pour toute reponse non-2xx ou erreur reseau
            ScrapeCancelled: si cancel est leve
        """
        response = self._send(method, url, cancel, **kwargs)
        if response.status_code == 401 and self._refresh is not None:
            logger.debug("credential rejected, refreshing", provider=self._provider_id)
            self._refresh()
            response = self._send(method, url, cancel, **kwargs)

        if not response.is_success:
            raise transport_error(
                self._describe(response),
                status_code=response.status_code,
                provider_id=self._provider_id,
            )
        return response

    def get_json(
        self, url: str, cancel: Optional[threading.Event] = None, **kwargs
    ) -> Any:
        """
        GET + decodage JSON.

        Un corps vide ou "null" sur une reponse 2xx est une erreur fatale
        (TRANSPORT), jamais un resultat vide.
        """
        response = self.execute("GET", url, cancel=cancel, **kwargs)
        return self.decode_json(response)

    def post_json(
        self, url: str, cancel: Optional[threading.Event] = None, **kwargs
    ) -> Any:
        response = self.execute("POST", url, cancel=cancel, **kwargs)
        return self.decode_json(response)

    def decode_json(self, response: httpx.Response) -> Any:
        if not response.content or not response.content.strip():
            raise transport_error(
                "empty response body", response.status_code, self._provider_id
            )
        try:
            data = response.json()
        except ValueError as e:
            raise transport_error(
                f"invalid JSON body: {e}", response.status_code, self._provider_id
            ) from e
        if data is None:
            raise transport_error(
                "null response body", response.status_code, self._provider_id
            )
        return data

    def _send(
        self,
        method: str,
        url: str,
        cancel: Optional[threading.Event],
        **kwargs,
    ) -> httpx.Response:
        def before_attempt() -> None:
            if cancel is not None and cancel.is_set():
                raise ScrapeCancelled(f"request to {self._provider_id} cancelled")
            if self._rate_limiter is not None:
                self._rate_limiter.acquire(cancel)

        # pas de login pour une requete deja annulee
        if cancel is not None and cancel.is_set():
            raise ScrapeCancelled(f"request to {self._provider_id} cancelled")
        if self._auth is not None:
            headers = dict(kwargs.pop("headers", None) or {})
            headers.update(self._auth())
            kwargs["headers"] = headers

        try:
            return request_with_retry(
                self._client,
                method,
                url,
                max_attempts=self._max_attempts,
                max_wait=self._max_wait,
                before_request=before_attempt,
                **kwargs,
            )
        except RateLimitError as e:
            raise transport_error(
                "rate limited, retries exhausted",
                status_code=429,
                provider_id=self._provider_id,
            ) from e
        except httpx.HTTPError as e:
            raise transport_error(
                f"{type(e).__name__}: {e}", provider_id=self._provider_id
            ) from e

    def _describe(self, response: httpx.Response) -> str:
        message = response.reason_phrase or f"HTTP {response.status_code}"
        body: Optional[str] = None
        if self._error_body is not None:
            try:
                body = self._error_body(response)
            except ValueError:
                body = None
        if body is None:
            body = response.text[:200] if response.text else None
        if body:
            return f"{message}: {body}"
        return message
