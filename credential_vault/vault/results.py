"""Outcome types returned by the vault service."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from vault.pagination import PageInfo


class VaultErrorKind(str, Enum):
    """Error categories a vault operation can report."""

    INVALID_INPUT = "InvalidInput"
    CONFLICT = "Conflict"
    NOT_FOUND = "NotFound"
    INTERNAL_FAILURE = "InternalFailure"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    VaultErrorKind.INVALID_INPUT: 400,
    VaultErrorKind.NOT_FOUND: 404,
    VaultErrorKind.CONFLICT: 409,
    VaultErrorKind.INTERNAL_FAILURE: 500,
}


@dataclass
class VaultResult:
    """Represents the outcome of a vault operation."""

    ok: bool
    message: str = ""
    data: Any = None
    page_info: Optional[PageInfo] = None
    count: Optional[int] = None
    error: Optional[VaultErrorKind] = None

    @classmethod
    def success(cls, message: str = "", **kwargs) -> "VaultResult":
        return cls(True, message, **kwargs)

    @classmethod
    def failure(cls, error: VaultErrorKind, message: str) -> "VaultResult":
        return cls(False, message, error=error)
