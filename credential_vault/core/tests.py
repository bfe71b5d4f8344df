import json
import logging
import sys
from types import SimpleNamespace

from django.http import HttpResponse
from django.test import RequestFactory, SimpleTestCase, override_settings

from core.logging_formatters import StructuredJSONFormatter
from core.logging_utils import AppLogger
from core.middleware import (
    LoggingMiddleware,
    RequestContextFilter,
    _request_context,
    get_client_ip,
    get_request_context,
)


class AppLoggerTests(SimpleTestCase):
    def setUp(self):
        self.logger = AppLogger('core.tests')

    def test_info_logs_formatted_message_with_owner_and_extra(self):
        extra = {'entry_id': 'abc', 'action': 'view'}
        with self.assertLogs('core.tests', level='INFO') as captured:
            self.logger.info('Test message', owner_id=42, extra_data=extra)
        self.assertEqual(len(captured.output), 1)
        logged_message = captured.output[0]
        self.assertIn('[Owner: 42] Test message', logged_message)
        self.assertIn('entry_id: abc', logged_message)
        self.assertIn('action: view', logged_message)

    def test_context_is_attached_to_record(self):
        with self.assertLogs('core.tests', level='INFO') as captured:
            self.logger.info('Contextual', owner_id=7, extra_data={'entry_id': 'abc'})
        self.assertEqual(captured.records[0].context, {'owner_id': 7, 'entry_id': 'abc'})

    def test_security_event_uses_security_logger(self):
        with self.assertLogs('django.security', level='WARNING') as captured:
            self.logger.security_event('Suspicious activity', owner_id=3)
        self.assertEqual(len(captured.output), 1)
        self.assertIn('SECURITY EVENT: Suspicious activity', captured.output[0])

    def test_critical_logs_to_alerts_logger(self):
        with self.assertLogs('alerts', level='ERROR') as alerts_log, self.assertLogs(
            'core.tests', level='CRITICAL'
        ) as core_log:
            self.logger.critical('Critical failure detected')
        self.assertTrue(any('CRITICAL: Critical failure detected' in entry for entry in alerts_log.output))
        self.assertTrue(any('Critical failure detected' in entry for entry in core_log.output))

    def test_user_activity_includes_owner_and_action(self):
        with self.assertLogs('core.tests', level='INFO') as captured:
            self.logger.user_activity('vault_entry_created', 5, details='entry 1')
        self.assertIn('Owner 5 performed action: vault_entry_created - entry 1', captured.output[0])


class StructuredJSONFormatterTests(SimpleTestCase):
    def test_groups_request_fields_and_context(self):
        record = logging.LogRecord('vault', logging.INFO, __file__, 10, 'created', (), None)
        record.request_id = 'req-1'
        record.http_method = 'POST'
        record.context = {'owner_id': 9, 'severity': 'custom'}

        payload = json.loads(StructuredJSONFormatter(service='vault-test').format(record))

        self.assertEqual(payload['service'], 'vault-test')
        self.assertEqual(payload['event'], 'created')
        self.assertEqual(payload['logger'], 'vault')
        self.assertEqual(payload['severity'], 'INFO')
        self.assertEqual(payload['source'], 'tests:10')
        self.assertEqual(payload['request'], {'request_id': 'req-1', 'http_method': 'POST'})
        self.assertEqual(payload['context'], {'owner_id': 9, 'severity': 'custom'})
        self.assertNotIn('error', payload)

    def test_omits_empty_sections(self):
        record = logging.LogRecord('core', logging.WARNING, __file__, 3, 'plain', (), None)
        payload = json.loads(StructuredJSONFormatter().format(record))
        self.assertEqual(payload['service'], 'credential-vault')
        self.assertNotIn('request', payload)
        self.assertNotIn('context', payload)

    def test_renders_exception_type_and_detail(self):
        try:
            raise ValueError('bad cipher length')
        except ValueError:
            record = logging.LogRecord('vault', logging.ERROR, __file__, 5, 'failed', (), sys.exc_info())

        error = json.loads(StructuredJSONFormatter().format(record))['error']

        self.assertEqual(error['type'], 'ValueError')
        self.assertEqual(error['detail'], 'bad cipher length')
        self.assertIn('Traceback', error['traceback'])


class MiddlewareTests(SimpleTestCase):
    def test_get_client_ip_uses_remote_addr(self):
        request = SimpleNamespace(META={'REMOTE_ADDR': '198.51.100.5'})
        self.assertEqual(get_client_ip(request), '198.51.100.5')

    def test_get_client_ip_ignores_forwarded_header_from_untrusted_peer(self):
        request = SimpleNamespace(META={'HTTP_X_FORWARDED_FOR': '203.0.113.10', 'REMOTE_ADDR': '198.51.100.5'})
        self.assertEqual(get_client_ip(request), '198.51.100.5')

    @override_settings(TRUSTED_PROXY_IPS=['10.0.0.0/8'])
    def test_get_client_ip_honours_trusted_proxy(self):
        request = SimpleNamespace(
            META={'HTTP_X_FORWARDED_FOR': 'unknown, 203.0.113.1', 'REMOTE_ADDR': '10.0.0.2'}
        )
        self.assertEqual(get_client_ip(request), '203.0.113.1')

    def test_get_client_ip_unknown_without_address(self):
        self.assertEqual(get_client_ip(SimpleNamespace(META={})), 'unknown')

    def test_request_context_filter_adds_context_information(self):
        token = _request_context.set(
            {
                'user_id': '42',
                'ip': '192.0.2.55',
                'request_id': 'req-1',
                'method': 'GET',
                'path': '/vault/passwords/',
            }
        )
        try:
            record = logging.LogRecord('test', logging.INFO, __file__, 10, 'msg', (), None)
            RequestContextFilter().filter(record)
            self.assertEqual(record.user_id, '42')
            self.assertEqual(record.ip, '192.0.2.55')
            self.assertEqual(record.request_id, 'req-1')
            self.assertEqual(record.http_method, 'GET')
            self.assertEqual(record.path, '/vault/passwords/')
        finally:
            _request_context.reset(token)

    def test_logging_middleware_populates_and_cleans_context(self):
        class AuthenticatedUser:
            is_authenticated = True
            id = 7

        factory = RequestFactory()
        request = factory.get('/vault/passwords/', REMOTE_ADDR='198.51.100.7')
        request.user = AuthenticatedUser()

        captured_state = {}

        def get_response(request):
            captured_state['context'] = get_request_context().copy()
            return HttpResponse('ok')

        middleware = LoggingMiddleware(get_response)
        response = middleware(request)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(request.request_id, response.headers['X-Request-ID'])
        self.assertEqual(captured_state['context']['request_id'], response.headers['X-Request-ID'])
        self.assertEqual(captured_state['context']['user_id'], '7')
        self.assertEqual(captured_state['context']['ip'], '198.51.100.7')
        self.assertEqual(captured_state['context']['method'], 'GET')
        self.assertEqual(captured_state['context']['path'], '/vault/passwords/')
        self.assertEqual(get_request_context(), {})

    def test_logging_middleware_reuses_incoming_request_id(self):
        request = RequestFactory().get('/vault/passwords/', HTTP_X_REQUEST_ID='upstream-id')
        response = LoggingMiddleware(lambda req: HttpResponse('ok'))(request)
        self.assertEqual(response['X-Request-ID'], 'upstream-id')

    def test_logging_middleware_logs_completed_request_with_status(self):
        request = RequestFactory().get('/vault/passwords/', HTTP_X_REQUEST_ID='req-42')
        middleware = LoggingMiddleware(lambda req: HttpResponse(status=404))

        with self.assertLogs('core', level='INFO') as captured:
            middleware(request)

        record = captured.records[0]
        self.assertIn('GET /vault/passwords/ completed', record.getMessage())
        self.assertEqual(record.context['status_code'], 404)
        self.assertIn('duration_ms', record.context)
