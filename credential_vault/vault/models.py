import uuid
from django.db import models
from django.conf import settings
from django_prometheus.models import ExportModelOperationsMixin


class VaultEntryQuerySet(models.QuerySet):
    def owned_by(self, owner_id):
        """Restrict the queryset to entries belonging to ``owner_id``."""
        return self.filter(owner_id=owner_id)


class VaultEntry(ExportModelOperationsMixin('vault_entry'), models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='vault_entries')

    # Caller-side encoded values, stored as given
    website_name = models.CharField(max_length=255)
    url = models.CharField(max_length=2048)

    # (ciphertext, iv) pairs produced by the client; never decrypted here
    username_cipher = models.TextField()
    username_iv = models.CharField(max_length=255)
    password_cipher = models.TextField()
    password_iv = models.CharField(max_length=255)

    password_strength = models.JSONField(null=True, blank=True)
    is_compromised = models.BooleanField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = VaultEntryQuerySet.as_manager()

    EDITABLE_FIELDS = (
        'website_name',
        'url',
        'username_cipher',
        'username_iv',
        'password_cipher',
        'password_iv',
        'password_strength',
        'is_compromised',
    )

    class Meta:
        ordering = ['created_at', 'id']
        db_table = 'vault_vaultentry'
        constraints = [
            models.UniqueConstraint(
                fields=['owner', 'website_name', 'url'],
                name='vault_entry_unique_site_per_owner',
            ),
        ]

    def __str__(self):
        return f"VaultEntry {self.id} ({self.website_name}) for owner {self.owner_id}"
