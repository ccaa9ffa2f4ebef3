"""Exception types shared across KachoriOS components."""

from __future__ import annotations


class KachoriError(Exception):
    """Base class for all KachoriOS errors."""


class CredentialRejected(KachoriError, ValueError):
    """The submitted credential failed validation; the gate stays locked."""


class CredentialRequired(KachoriError, RuntimeError):
    """A component was requested while no credential is active."""


class AnalysisFailed(KachoriError, RuntimeError):
    """The analysis service returned something that could not be used."""


class StorageReadCorrupt(KachoriError, ValueError):
    """Persisted data could not be decoded."""


class StorageWriteError(KachoriError, OSError):
    """Persisting a value to the key-value store failed."""
