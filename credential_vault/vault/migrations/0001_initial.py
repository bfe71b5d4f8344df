import uuid

import django.db.models.deletion
import django_prometheus.models
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='VaultEntry',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('website_name', models.CharField(max_length=255)),
                ('url', models.CharField(max_length=2048)),
                ('username_cipher', models.TextField()),
                ('username_iv', models.CharField(max_length=255)),
                ('password_cipher', models.TextField()),
                ('password_iv', models.CharField(max_length=255)),
                ('password_strength', models.JSONField(blank=True, null=True)),
                ('is_compromised', models.BooleanField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='vault_entries',
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                'db_table': 'vault_vaultentry',
                'ordering': ['created_at', 'id'],
            },
            bases=(django_prometheus.models.ExportModelOperationsMixin('vault_entry'), models.Model),
        ),
        migrations.AddConstraint(
            model_name='vaultentry',
            constraint=models.UniqueConstraint(
                fields=('owner', 'website_name', 'url'),
                name='vault_entry_unique_site_per_owner',
            ),
        ),
    ]
