"""Request-scoped logging context for the vault HTTP layer."""

import logging
import time
import uuid
from contextvars import ContextVar
from ipaddress import ip_address, ip_network

from django.conf import settings

from core.logging_utils import get_core_logger

_request_context: ContextVar[dict] = ContextVar('vault_request_context', default={})

_CONTEXT_ATTRIBUTES = (
    ('request_id', 'request_id'),
    ('user_id', 'user_id'),
    ('ip', 'ip'),
    ('method', 'http_method'),
    ('path', 'path'),
)


def get_request_context():
    """Return the logging context of the request being handled, if any."""
    return _request_context.get()


def _clean_ip(candidate):
    """Return a normalized IP address string or ``None`` if invalid."""
    if not candidate:
        return None
    value = candidate.strip().strip('"')
    if value.startswith('[') and ']' in value:
        value = value[1:value.index(']')]
    elif value.count(':') == 1:
        # IPv4 host:port
        value = value.partition(':')[0]
    try:
        return str(ip_address(value))
    except ValueError:
        return None


def _is_trusted_proxy(remote_addr):
    if not remote_addr:
        return False
    for network in getattr(settings, 'TRUSTED_PROXY_IPS', ()):
        try:
            if ip_address(remote_addr) in ip_network(network, strict=False):
                return True
        except ValueError:
            continue
    return False


def get_client_ip(request):
    """
    Return the client IP address for the request.

    ``X-Forwarded-For`` is only honoured when the direct peer is listed in
    ``TRUSTED_PROXY_IPS``; the first valid address in the header wins.
    """
    meta = getattr(request, 'META', {}) or {}
    remote_addr = _clean_ip(meta.get('REMOTE_ADDR'))

    if _is_trusted_proxy(remote_addr):
        for part in (meta.get('HTTP_X_FORWARDED_FOR') or '').split(','):
            cleaned = _clean_ip(part)
            if cleaned:
                return cleaned

    return remote_addr or 'unknown'


class RequestContextFilter(logging.Filter):
    """
    Logging filter that copies the current request context onto log records.
    """

    def filter(self, record):
        context = _request_context.get()
        for key, attribute in _CONTEXT_ATTRIBUTES:
            value = context.get(key)
            if value is not None and not hasattr(record, attribute):
                setattr(record, attribute, value)
        return True


class LoggingMiddleware:
    """Middleware to tag every request with an id and expose its context to logging."""

    def __init__(self, get_response):
        self.get_response = get_response
        self.logger = get_core_logger()

    def __call__(self, request):
        started = time.monotonic()
        request_id = request.META.get('HTTP_X_REQUEST_ID') or uuid.uuid4().hex
        request.request_id = request_id

        user = getattr(request, 'user', None)
        if getattr(user, 'is_authenticated', False):
            user_id = str(getattr(user, 'id', getattr(user, 'pk', 'anonymous')))
        else:
            user_id = 'anonymous'

        token = _request_context.set({
            'request_id': request_id,
            'user_id': user_id,
            'ip': get_client_ip(request),
            'method': request.method,
            'path': request.path,
        })
        try:
            response = self.get_response(request)
            self.logger.info(
                f"{request.method} {request.path} completed",
                extra_data={
                    "status_code": response.status_code,
                    "duration_ms": round((time.monotonic() - started) * 1000, 1),
                },
            )
        finally:
            # Context must not leak into the next request on this worker
            _request_context.reset(token)

        response['X-Request-ID'] = request_id
        return response
