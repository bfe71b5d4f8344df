"""Translation between the JSON wire format and ``VaultEntry`` fields."""

from typing import Any, Dict

from vault.models import VaultEntry

REQUIRED_CREATE_FIELDS = ('websiteName', 'websiteUrl', 'username', 'password', 'usernameIv', 'passwordIv')

# Flat wire keys accepted on edit, mapped to model fields
_FLAT_UPDATE_FIELDS = {
    'websiteName': 'website_name',
    'websiteUrl': 'url',
    'url': 'url',
    'usernameIv': 'username_iv',
    'passwordIv': 'password_iv',
    'passwordStrength': 'password_strength',
    'isCompromised': 'is_compromised',
}

# Secret wire keys: (cipher field, iv field, nested cipher key)
_SECRET_UPDATE_FIELDS = {
    'username': ('username_cipher', 'username_iv', 'encUsername'),
    'password': ('password_cipher', 'password_iv', 'encPassword'),
}


def serialize_entry(entry: VaultEntry) -> Dict[str, Any]:
    """Return the client representation of an entry; cipher/iv pairs pass through untouched."""
    return {
        'id': str(entry.id),
        'websiteName': entry.website_name,
        'url': entry.url,
        'username': {'encUsername': entry.username_cipher, 'iv': entry.username_iv},
        'password': {'encPassword': entry.password_cipher, 'iv': entry.password_iv},
        'passwordStrength': entry.password_strength,
        'isCompromised': entry.is_compromised,
        'createdAt': entry.created_at.isoformat() if entry.created_at else None,
        'updatedAt': entry.updated_at.isoformat() if entry.updated_at else None,
    }


def missing_create_fields(body: Dict[str, Any]):
    return [name for name in REQUIRED_CREATE_FIELDS if body.get(name) in (None, '')]


def parse_entry_updates(body: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map an edit payload onto model field names.

    ``username``/``password`` may be a bare ciphertext string or a nested
    ``{"encUsername"|"encPassword": ..., "iv": ...}`` object. Unknown keys,
    including ``id`` and owner fields, are dropped.
    """
    updates: Dict[str, Any] = {}
    for key, value in body.items():
        if key in _FLAT_UPDATE_FIELDS:
            updates[_FLAT_UPDATE_FIELDS[key]] = value
        elif key in _SECRET_UPDATE_FIELDS:
            cipher_field, iv_field, nested_key = _SECRET_UPDATE_FIELDS[key]
            if isinstance(value, dict):
                if nested_key in value:
                    updates[cipher_field] = value[nested_key]
                if 'iv' in value:
                    updates[iv_field] = value['iv']
            else:
                updates[cipher_field] = value
    return {name: value for name, value in updates.items() if name in VaultEntry.EDITABLE_FIELDS}
