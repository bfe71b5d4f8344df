"""Custom exceptions for the vault domain."""

from typing import Optional


class VaultStoreError(Exception):
    """Base exception for vault persistence operations."""

    def __init__(self, message: str, *, owner_id: Optional[int] = None):
        super().__init__(message)
        self.owner_id = owner_id


class DuplicateEntry(VaultStoreError):
    """Raised when an owner already has an entry for the same website name and URL."""


class InvalidEntry(VaultStoreError):
    """Raised when field values are rejected by model field validation."""
