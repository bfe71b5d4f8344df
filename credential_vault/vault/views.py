import json
from functools import wraps

from django.http import JsonResponse
from django.views.decorators.csrf import ensure_csrf_cookie
from django.views.decorators.http import require_http_methods

from core.logging_utils import get_security_logger, get_vault_logger
from core.middleware import get_client_ip
from vault.results import VaultErrorKind, VaultResult
from vault.serializers import missing_create_fields, parse_entry_updates, serialize_entry
from vault.services import CipherPair, VaultService

# Get centralized logger
logger = get_vault_logger()
security_logger = get_security_logger()

service = VaultService()


def _json_response(payload, status=200):
    # Responses may contain secrets, even if encrypted
    response = JsonResponse(payload, status=status)
    response['Cache-Control'] = 'no-store, private'
    response['Pragma'] = 'no-cache'
    return response


def _error_response(kind: VaultErrorKind, message: str):
    return _json_response({'success': False, 'message': message}, status=kind.status_code)


def _render_result(result: VaultResult, status=200, include_data=True):
    if not result.ok:
        return _error_response(result.error, result.message)

    payload = {'success': True}
    if result.message:
        payload['message'] = result.message
    if result.page_info is not None:
        payload.update(result.page_info.as_dict())
    if include_data and result.data is not None:
        if isinstance(result.data, list):
            payload['data'] = [serialize_entry(entry) for entry in result.data]
        else:
            payload['data'] = serialize_entry(result.data)
    if result.count is not None:
        payload['deletedCount'] = result.count
    return _json_response(payload, status=status)


def _parse_json_body(request):
    """Return the request body as a dict, or ``None`` when it is not a JSON object."""
    try:
        body = json.loads(request.body or b'{}')
    except (ValueError, UnicodeDecodeError):
        return None
    return body if isinstance(body, dict) else None


def owner_required(view):
    """Reject anonymous requests with a JSON 401 instead of a login redirect."""

    @wraps(view)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            security_logger.security_event(
                "Unauthenticated vault access attempt",
                extra_data={"ip": get_client_ip(request), "path": request.path},
            )
            return _json_response({'success': False, 'message': 'Authentication required.'}, status=401)
        return view(request, *args, **kwargs)

    return wrapper


def _handle_add(request):
    body = _parse_json_body(request)
    if body is None:
        return _error_response(VaultErrorKind.INVALID_INPUT, 'Request body must be a JSON object.')

    missing = missing_create_fields(body)
    if missing:
        return _error_response(VaultErrorKind.INVALID_INPUT, f"Missing required fields: {', '.join(missing)}")

    result = service.add(
        request.user.pk,
        website_name=body['websiteName'],
        url=body['websiteUrl'],
        username=CipherPair(body['username'], body['usernameIv']),
        password=CipherPair(body['password'], body['passwordIv']),
        password_strength=body.get('passwordStrength'),
        is_compromised=body.get('isCompromised'),
    )
    return _render_result(result, status=201, include_data=False)


def _handle_list(request):
    result = service.list(
        request.user.pk,
        page=request.GET.get('page'),
        limit=request.GET.get('limit'),
        search_term=request.GET.get('search'),
    )
    return _render_result(result)


@require_http_methods(["GET", "POST"])
@ensure_csrf_cookie
@owner_required
def passwords(request):
    # GET hands the session client its CSRF token for later writes
    if request.method == "POST":
        return _handle_add(request)
    return _handle_list(request)


@require_http_methods(["GET", "PATCH", "PUT", "DELETE"])
@owner_required
def password_detail(request, entry_id):
    if request.method == "GET":
        return _render_result(service.get_one(request.user.pk, entry_id))

    if request.method == "DELETE":
        return _render_result(service.delete_one(request.user.pk, entry_id))

    body = _parse_json_body(request)
    if body is None:
        return _error_response(VaultErrorKind.INVALID_INPUT, 'Request body must be a JSON object.')
    return _render_result(service.edit(request.user.pk, entry_id, parse_entry_updates(body)))


@require_http_methods(["POST"])
@owner_required
def delete_passwords(request):
    body = _parse_json_body(request)
    if body is None:
        return _error_response(VaultErrorKind.INVALID_INPUT, 'Request body must be a JSON object.')
    return _render_result(service.delete_many(request.user.pk, body.get('passwordIds')))
