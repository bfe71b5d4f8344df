"""
Persistence layer for vault entries.

Every query goes through ``VaultEntry.objects.owned_by`` so no path can reach
an entry belonging to another owner. Uniqueness of ``(owner, website_name,
url)`` is enforced by the database constraint; ``IntegrityError`` raised by
it is translated to ``DuplicateEntry``.
"""

import uuid
from typing import Any, Dict, Iterable, List, Optional, Tuple

from django.core.exceptions import ValidationError
from django.db import DatabaseError, IntegrityError, transaction

from vault.exceptions import DuplicateEntry, InvalidEntry, VaultStoreError
from vault.models import VaultEntry
from vault.pagination import DEFAULT_LIMIT, DEFAULT_PAGE, MAX_LIMIT, PageInfo, paginate


def _coerce_entry_id(value: Any) -> Optional[uuid.UUID]:
    """Return ``value`` as a UUID, or ``None`` when it cannot be one."""
    if isinstance(value, uuid.UUID):
        return value
    if value is None or isinstance(value, bool):
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class VaultStore:
    """Owner-scoped persistence operations over ``VaultEntry``."""

    model = VaultEntry

    def owned(self, owner_id):
        return self.model.objects.owned_by(owner_id)

    def find_owned(self, owner_id, **filters) -> Optional[VaultEntry]:
        """Return the single owned entry matching ``filters``, if any."""
        if 'id' in filters:
            entry_id = _coerce_entry_id(filters['id'])
            if entry_id is None:
                return None
            filters['id'] = entry_id
        try:
            return self.owned(owner_id).filter(**filters).first()
        except DatabaseError as exc:
            raise VaultStoreError(f"Failed to look up vault entry: {exc}", owner_id=owner_id) from exc

    def find_many_owned(
        self,
        owner_id,
        filters: Optional[Dict[str, Any]] = None,
        search_term: Optional[str] = None,
        search_fields: Iterable[str] = (),
        page: Any = DEFAULT_PAGE,
        limit: Any = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
    ) -> Tuple[List[VaultEntry], PageInfo]:
        try:
            return paginate(
                self.owned(owner_id),
                filters,
                search_term,
                search_fields,
                page=page,
                limit=limit,
                max_limit=max_limit,
            )
        except DatabaseError as exc:
            raise VaultStoreError(f"Failed to list vault entries: {exc}", owner_id=owner_id) from exc

    def insert(self, owner_id, **fields) -> VaultEntry:
        """Create a new entry; raises ``DuplicateEntry`` on a uniqueness collision."""
        try:
            with transaction.atomic():
                return self.model.objects.create(owner_id=owner_id, **fields)
        except IntegrityError as exc:
            if self._collides(owner_id, fields.get('website_name'), fields.get('url')):
                raise DuplicateEntry("Vault entry already exists", owner_id=owner_id) from exc
            raise VaultStoreError(f"Failed to insert vault entry: {exc}", owner_id=owner_id) from exc
        except DatabaseError as exc:
            raise VaultStoreError(f"Failed to insert vault entry: {exc}", owner_id=owner_id) from exc
        except ValidationError as exc:
            raise InvalidEntry(f"Rejected vault entry values: {exc}", owner_id=owner_id) from exc

    def update_owned(self, owner_id, entry_id, fields: Dict[str, Any]) -> Optional[VaultEntry]:
        """Apply editable ``fields`` to an owned entry and return it, or ``None`` if not owned."""
        entry_uuid = _coerce_entry_id(entry_id)
        if entry_uuid is None:
            return None

        changes = {name: value for name, value in fields.items() if name in self.model.EDITABLE_FIELDS}
        try:
            with transaction.atomic():
                entry = self.owned(owner_id).select_for_update().filter(id=entry_uuid).first()
                if entry is None:
                    return None
                for name, value in changes.items():
                    setattr(entry, name, value)
                entry.save(update_fields=[*changes, 'updated_at'])
                return entry
        except IntegrityError as exc:
            website_name = changes.get('website_name')
            url = changes.get('url')
            current = self.owned(owner_id).filter(id=entry_uuid).values('website_name', 'url').first()
            if current is not None:
                website_name = website_name if 'website_name' in changes else current['website_name']
                url = url if 'url' in changes else current['url']
            if self._collides(owner_id, website_name, url, exclude_id=entry_uuid):
                raise DuplicateEntry("Vault entry already exists", owner_id=owner_id) from exc
            raise VaultStoreError(f"Failed to update vault entry: {exc}", owner_id=owner_id) from exc
        except DatabaseError as exc:
            raise VaultStoreError(f"Failed to update vault entry: {exc}", owner_id=owner_id) from exc
        except ValidationError as exc:
            raise InvalidEntry(f"Rejected vault entry values: {exc}", owner_id=owner_id) from exc

    def delete_owned(self, owner_id, entry_id) -> int:
        entry_uuid = _coerce_entry_id(entry_id)
        if entry_uuid is None:
            return 0
        return self._delete(owner_id, self.owned(owner_id).filter(id=entry_uuid))

    def delete_many_owned(self, owner_id, entry_ids: Iterable[Any]) -> int:
        """Delete the owned entries among ``entry_ids``; others are skipped."""
        valid_ids = {uid for uid in (_coerce_entry_id(value) for value in entry_ids) if uid is not None}
        if not valid_ids:
            return 0
        return self._delete(owner_id, self.owned(owner_id).filter(id__in=valid_ids))

    def _delete(self, owner_id, queryset) -> int:
        try:
            _, per_model = queryset.delete()
        except DatabaseError as exc:
            raise VaultStoreError(f"Failed to delete vault entries: {exc}", owner_id=owner_id) from exc
        return per_model.get(self.model._meta.label, 0)

    def _collides(self, owner_id, website_name, url, exclude_id=None) -> bool:
        queryset = self.owned(owner_id).filter(website_name=website_name, url=url)
        if exclude_id is not None:
            queryset = queryset.exclude(id=exclude_id)
        return queryset.exists()
