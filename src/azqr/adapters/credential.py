"""Credential construction and the bearer-token policy used by the HTTP client."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Protocol

from azure.core.exceptions import ClientAuthenticationError
from azure.identity import DefaultAzureCredential

from .cloud import CloudConfiguration, get_cloud_configuration

logger = logging.getLogger(__name__)

TOKEN_REFRESH_MARGIN = 300.0


class CredentialError(RuntimeError):
    """Raised when an access token cannot be acquired."""


class TokenCredential(Protocol):
    def get_token(self, *scopes: str, **kwargs: Any) -> Any:  # pragma: no cover - protocol
        ...


def new_azure_credential(cloud: CloudConfiguration | None = None) -> DefaultAzureCredential:
    """Create the default credential chain for the resolved cloud.

    ``AZURE_TOKEN_CREDENTIALS`` and the other identity variables are read by
    the credential chain itself.
    """

    config = cloud or get_cloud_configuration()
    logger.debug("Creating default Azure credential for %s", config.name)
    return DefaultAzureCredential(authority=config.authority_host)


class BearerTokenPolicy:
    """Acquire, cache and refresh a bearer token for one scope."""

    def __init__(
        self,
        credential: TokenCredential,
        scope: str,
        *,
        refresh_margin: float = TOKEN_REFRESH_MARGIN,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._credential = credential
        self.scope = scope
        self._refresh_margin = refresh_margin
        self._clock = clock
        self._token: str | None = None
        self._expires_on = 0.0
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    def _needs_refresh(self) -> bool:
        return self._token is None or self._clock() >= self._expires_on - self._refresh_margin

    def token(self) -> str:
        with self._lock:
            if self._needs_refresh():
                try:
                    access_token = self._credential.get_token(self.scope)
                except ClientAuthenticationError as exc:
                    raise CredentialError(f"failed to get access token: {exc}") from exc
                self._token = access_token.token
                self._expires_on = float(access_token.expires_on)
                logger.debug("Acquired access token for scope %s", self.scope)
            return self._token  # type: ignore[return-value]

    def authorization_header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token()}"}


__all__ = ["BearerTokenPolicy", "CredentialError", "TokenCredential", "new_azure_credential"]
