"""
Vault service layer.
Implements the owner-scoped vault operations on top of ``VaultStore`` and
maps store outcomes to ``VaultResult`` values. Persistence errors never
escape this module.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from django.conf import settings
from django.db import DatabaseError

from core.logging_utils import get_vault_logger
from vault.exceptions import DuplicateEntry, InvalidEntry, VaultStoreError
from vault.pagination import DEFAULT_LIMIT, DEFAULT_PAGE, MAX_LIMIT, parse_positive_int
from vault.results import VaultErrorKind, VaultResult
from vault.store import VaultStore

logger = get_vault_logger()

INTERNAL_FAILURE_MESSAGE = 'Something went wrong!'

# Columns that must hold a non-empty value
REQUIRED_FIELDS = (
    'website_name',
    'url',
    'username_cipher',
    'username_iv',
    'password_cipher',
    'password_iv',
)


def rejected_fields(fields: Dict[str, Any]):
    """Return the names in ``fields`` whose values cannot be stored."""
    rejected = []
    for name, value in fields.items():
        if name in REQUIRED_FIELDS and (value is None or (isinstance(value, str) and not value.strip())):
            rejected.append(name)
        elif name == 'is_compromised' and value is not None and not isinstance(value, bool):
            rejected.append(name)
    return rejected


@dataclass(frozen=True)
class CipherPair:
    """Opaque ciphertext and the initialization vector it was produced with."""

    cipher: str
    iv: str


class VaultService:
    """Service for owner-scoped vault operations"""

    def __init__(self, store: Optional[VaultStore] = None):
        self.store = store or VaultStore()

    @staticmethod
    def _search_fields():
        return tuple(getattr(settings, 'VAULT_SEARCH_FIELDS', ('website_name',)))

    @staticmethod
    def _invalid_input(owner_id, rejected) -> VaultResult:
        logger.warning("Vault entry values rejected", owner_id, extra_data={"fields": ", ".join(rejected)})
        return VaultResult.failure(VaultErrorKind.INVALID_INPUT, f'Invalid values for: {", ".join(rejected)}.')

    def _internal_failure(self, action: str, owner_id, exc: Exception, **extra) -> VaultResult:
        logger.error(f"Vault {action} failed", owner_id, extra_data={"error": str(exc), **extra})
        logger.critical(f"Critical error in vault {action}", owner_id)
        return VaultResult.failure(VaultErrorKind.INTERNAL_FAILURE, INTERNAL_FAILURE_MESSAGE)

    def add(
        self,
        owner_id,
        website_name: str,
        url: str,
        username: CipherPair,
        password: CipherPair,
        password_strength: Any = None,
        is_compromised: Optional[bool] = None,
    ) -> VaultResult:
        """
        Store a new credential for ``owner_id``.

        Returns a ``Conflict`` result, without touching the store, when the
        owner already has an entry for the same website name and URL.
        """
        logger.user_activity("vault_entry_creation_attempt", owner_id, "Creating new vault entry")
        conflict = VaultResult.failure(VaultErrorKind.CONFLICT, 'Password already exists in the vault.')
        fields = {
            'website_name': website_name,
            'url': url,
            'username_cipher': username.cipher,
            'username_iv': username.iv,
            'password_cipher': password.cipher,
            'password_iv': password.iv,
            'password_strength': password_strength,
            'is_compromised': is_compromised,
        }
        rejected = rejected_fields(fields)
        if rejected:
            return self._invalid_input(owner_id, rejected)

        try:
            if self.store.find_owned(owner_id, website_name=website_name, url=url) is not None:
                logger.warning("Duplicate vault entry rejected", owner_id)
                return conflict

            entry = self.store.insert(owner_id, **fields)
        except DuplicateEntry:
            logger.warning("Duplicate vault entry rejected by store", owner_id)
            return conflict
        except InvalidEntry as e:
            logger.warning("Vault entry values rejected by store", owner_id, extra_data={"error": str(e)})
            return VaultResult.failure(VaultErrorKind.INVALID_INPUT, 'Invalid password entry values.')
        except (VaultStoreError, DatabaseError) as e:
            return self._internal_failure("entry creation", owner_id, e)

        logger.user_activity("vault_entry_created", owner_id, f"Successfully created vault entry {entry.id}")
        return VaultResult.success('Password information added successfully.', data=entry)

    def list(self, owner_id, page: Any = DEFAULT_PAGE, limit: Any = None,
             search_term: Optional[str] = None) -> VaultResult:
        """Return one page of the owner's entries, optionally filtered by website name."""
        default_limit = getattr(settings, 'VAULT_DEFAULT_PAGE_SIZE', DEFAULT_LIMIT)
        max_limit = getattr(settings, 'VAULT_MAX_PAGE_SIZE', MAX_LIMIT)
        try:
            entries, page_info = self.store.find_many_owned(
                owner_id,
                search_term=search_term,
                search_fields=self._search_fields(),
                page=page,
                limit=parse_positive_int(limit, default_limit, max_limit),
                max_limit=max_limit,
            )
        except (VaultStoreError, DatabaseError) as e:
            return self._internal_failure("listing", owner_id, e)

        if not entries:
            return VaultResult.failure(VaultErrorKind.NOT_FOUND, 'No passwords found')
        return VaultResult.success(data=entries, page_info=page_info)

    def get_one(self, owner_id, entry_id) -> VaultResult:
        try:
            entry = self.store.find_owned(owner_id, id=entry_id)
        except (VaultStoreError, DatabaseError) as e:
            return self._internal_failure("entry lookup", owner_id, e, entry_id=entry_id)

        if entry is None:
            logger.security_event("Vault entry lookup missed or not owned", owner_id, extra_data={"entry_id": entry_id})
            return VaultResult.failure(VaultErrorKind.NOT_FOUND, 'Password not found or access denied.')
        return VaultResult.success(data=entry)

    def edit(self, owner_id, entry_id, fields: Dict[str, Any]) -> VaultResult:
        """
        Apply a partial update to an owned entry.

        Only editable fields are written. An edit that would give the entry the
        same website name and URL as another of the owner's entries is
        rejected with ``Conflict``.
        """
        logger.user_activity("vault_entry_edit_attempt", owner_id, f"Editing vault entry {entry_id}")
        fields = fields or {}
        rejected = rejected_fields(fields)
        if rejected:
            return self._invalid_input(owner_id, rejected)

        try:
            entry = self.store.update_owned(owner_id, entry_id, fields)
        except DuplicateEntry:
            logger.warning("Vault entry edit would duplicate an existing entry", owner_id,
                           extra_data={"entry_id": entry_id})
            return VaultResult.failure(
                VaultErrorKind.CONFLICT,
                'Another entry with this website name and URL already exists.',
            )
        except InvalidEntry as e:
            logger.warning("Vault entry values rejected by store", owner_id,
                           extra_data={"entry_id": entry_id, "error": str(e)})
            return VaultResult.failure(VaultErrorKind.INVALID_INPUT, 'Invalid password entry values.')
        except (VaultStoreError, DatabaseError) as e:
            return self._internal_failure("entry update", owner_id, e, entry_id=entry_id)

        if entry is None:
            logger.security_event("Vault entry edit missed or not owned", owner_id, extra_data={"entry_id": entry_id})
            return VaultResult.failure(VaultErrorKind.NOT_FOUND, 'Password not found or not owned by the user')

        logger.user_activity("vault_entry_updated", owner_id, f"Successfully updated vault entry {entry.id}")
        return VaultResult.success('Password updated successfully', data=entry)

    def delete_one(self, owner_id, entry_id) -> VaultResult:
        if entry_id is None or not str(entry_id).strip():
            return VaultResult.failure(VaultErrorKind.INVALID_INPUT, 'Password ID is required.')

        logger.user_activity("vault_entry_delete_attempt", owner_id, f"Attempting to delete vault entry {entry_id}")
        try:
            deleted = self.store.delete_owned(owner_id, entry_id)
        except (VaultStoreError, DatabaseError) as e:
            return self._internal_failure("entry deletion", owner_id, e, entry_id=entry_id)

        if deleted == 0:
            logger.security_event("Vault entry delete missed or not owned", owner_id, extra_data={"entry_id": entry_id})
            return VaultResult.failure(VaultErrorKind.NOT_FOUND, 'Password not found or not owned by the user.')

        logger.user_activity("vault_entry_deleted", owner_id, f"Successfully deleted vault entry: {entry_id}")
        return VaultResult.success('Password has been successfully deleted.', count=deleted)

    def delete_many(self, owner_id, entry_ids: Iterable[Any]) -> VaultResult:
        if not isinstance(entry_ids, (list, tuple, set, frozenset)) or not entry_ids:
            return VaultResult.failure(VaultErrorKind.INVALID_INPUT, 'An array of password IDs is required.')

        logger.user_activity("vault_entries_bulk_delete_attempt", owner_id,
                             f"Attempting to delete {len(entry_ids)} vault entries")
        try:
            deleted = self.store.delete_many_owned(owner_id, entry_ids)
        except (VaultStoreError, DatabaseError) as e:
            return self._internal_failure("bulk deletion", owner_id, e)

        if deleted == 0:
            logger.security_event("Vault bulk delete matched no owned entries", owner_id,
                                  extra_data={"requested": len(entry_ids)})
            return VaultResult.failure(
                VaultErrorKind.NOT_FOUND,
                'No passwords were deleted. They may not exist or not be owned by the user.',
            )

        logger.user_activity("vault_entries_deleted", owner_id, f"Successfully deleted {deleted} vault entries")
        return VaultResult.success(f'{deleted} passwords have been successfully deleted.', count=deleted)
