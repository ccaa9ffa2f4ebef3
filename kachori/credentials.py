"""Access credential gate.

Nothing else in KachoriOS is reachable until a credential has been accepted.
"""

from __future__ import annotations

import logging

from .db.kv import KeyValueStore
from .errors import CredentialRejected, StorageWriteError

logger = logging.getLogger(__name__)

MIN_CREDENTIAL_LENGTH = 10


def is_valid_credential(candidate: str) -> bool:
    """A credential must be longer than MIN_CREDENTIAL_LENGTH once stripped."""
    return len(candidate.strip()) > MIN_CREDENTIAL_LENGTH


class CredentialGate:
    """Holds the single active API key for the process."""

    def __init__(
        self,
        storage: KeyValueStore,
        key: str = "kachori_api_key",
        fallback: str = "",
    ) -> None:
        self._storage = storage
        self._key = key
        self._fallback = fallback
        self._active: str | None = None
        self._source: str | None = None

    @property
    def credential(self) -> str | None:
        return self._active

    @property
    def source(self) -> str | None:
        """Where the active credential came from: "storage" or "config"."""
        return self._source

    @property
    def locked(self) -> bool:
        return self._active is None

    def load(self) -> str | None:
        """Activate the stored credential, if any.

        A key from configuration or the environment is used when storage is
        empty. It is not written back to storage.
        """
        if self._active is not None:
            return self._active

        stored = self._storage.get(self._key)
        for source, candidate in (("storage", stored), ("config", self._fallback)):
            if candidate and is_valid_credential(candidate):
                self._active = candidate.strip()
                self._source = source
                logger.info("Credential loaded from %s", source)
                return self._active
        return None

    def submit(self, candidate: str) -> str:
        """Validate, persist and activate *candidate*.

        Raises:
            CredentialRejected: If the candidate is too short or a credential
                is already active.
        """
        if self._active is not None:
            raise CredentialRejected("A credential is already active")
        if not is_valid_credential(candidate):
            raise CredentialRejected(
                f"API key must be longer than {MIN_CREDENTIAL_LENGTH} characters"
            )

        credential = candidate.strip()
        try:
            self._storage.set(self._key, credential)
        except StorageWriteError:
            logger.exception("Failed to save credential; it is active for this session only")
        self._active = credential
        self._source = "storage"
        logger.info("Credential accepted")
        return credential
