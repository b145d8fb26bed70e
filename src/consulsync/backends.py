"""
KV backends -- where the records come from and go to.

Each backend can list its keys, fetch one value, and upsert one value.
The engine never talks HTTP itself; it asks ``create_backend`` for a
backend bound to one cluster and drives it key by key.

Consul: the ``/v1/kv`` HTTP API, one request per key.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import quote, urlparse

import requests

from .models import StoreConfig

logger = logging.getLogger("consulsync.backends")


class BackendError(Exception):
    """A request to the KV store failed or returned an unexpected response."""


class KVBackend(ABC):
    """Abstract key/value store."""

    @abstractmethod
    def list_keys(self) -> list[str]:
        """Return every key in the store, in the store's listing order."""

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Fetch the raw value of ``key``.

        Returns:
            The value, or None if the key does not exist.
        """

    @abstractmethod
    def put(self, key: str, value: bytes) -> None:
        """Create or overwrite ``key``.

        Raises:
            BackendError: If the write was not acknowledged.
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable backend name."""

    def close(self) -> None:
        """Release any held connections."""

    def __enter__(self) -> "KVBackend":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class ConsulBackend(KVBackend):
    """Consul KV over HTTP.

    The ACL token, when set, travels in the ``X-Consul-Token`` header.
    """

    def __init__(self, config: StoreConfig, timeout: float = 10.0):
        address = config.address
        # Consul accepts bare host:port and assumes http
        if address and "://" not in address:
            address = "http://" + address
        parsed = urlparse(address)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise BackendError(
                f"Invalid Consul address for {config.name}: {config.address!r}"
            )

        self.config = config
        self.timeout = timeout
        self.base_url = address.rstrip("/") + "/v1/kv/"
        self.session = requests.Session()
        if config.token:
            self.session.headers["X-Consul-Token"] = config.token

    @property
    def name(self) -> str:
        return self.config.name

    def _url(self, key: str) -> str:
        return self.base_url + quote(key, safe="/")

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise BackendError(f"{method} {url} failed: {exc}") from exc

    def list_keys(self) -> list[str]:
        resp = self._request("GET", self.base_url, params={"keys": ""})
        if resp.status_code == 404:
            logger.info("Consul %s has no keys", self.name)
            return []
        if resp.status_code >= 400:
            raise BackendError(
                f"Listing keys on {self.name}: {resp.status_code} {resp.text}"
            )
        try:
            keys = resp.json()
        except ValueError as exc:
            raise BackendError(f"Listing keys on {self.name}: bad JSON: {exc}") from exc
        if not isinstance(keys, list):
            raise BackendError(f"Listing keys on {self.name}: expected a list")
        logger.debug("Consul %s lists %d keys", self.name, len(keys))
        return [str(k) for k in keys]

    def get(self, key: str) -> Optional[bytes]:
        resp = self._request("GET", self._url(key), params={"raw": ""})
        if resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            raise BackendError(f"GET {key}: {resp.status_code} {resp.text}")
        return resp.content

    def put(self, key: str, value: bytes) -> None:
        resp = self._request("PUT", self._url(key), data=value)
        if resp.status_code >= 400:
            raise BackendError(f"PUT {key}: {resp.status_code} {resp.text}")
        if resp.text.strip() != "true":
            raise BackendError(f"PUT {key}: not acknowledged ({resp.text.strip()!r})")

    def close(self) -> None:
        self.session.close()


def create_backend(config: StoreConfig, timeout: float = 10.0) -> KVBackend:
    """Factory function to create the backend for one cluster.

    Args:
        config: Store address and token.
        timeout: Per-request timeout in seconds.

    Returns:
        Instantiated KVBackend.

    Raises:
        BackendError: If the address cannot be used.
    """
    return ConsulBackend(config, timeout=timeout)
