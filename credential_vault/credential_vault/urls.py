"""
URL configuration for credential_vault project.

The vault JSON API lives under ``/vault/``; Prometheus metrics are exposed
at ``/metrics``.
"""
from django.urls import path, include

urlpatterns = [
    path('vault/', include('vault.urls')),
    path('', include('django_prometheus.urls')),  # /metrics endpoint
]
