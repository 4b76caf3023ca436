#!/usr/bin/env python3
import unittest
from datetime import datetime, timezone
from unittest.mock import Mock, patch

from linear_relay.constants import ConfigError, Settings, load_settings
from linear_relay.controller import create_app
from linear_relay.linear import LinearAPIError
from linear_relay.services import DiscordDeliveryError

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _settings(**overrides):
    base = Settings(discord_webhook_url='https://discord.test/hook', linear_api_key='lin_api_test')
    return base.with_overrides(**overrides)


def _page(nodes):
    resp = Mock(status_code=200, text='')
    resp.json.return_value = {
        'data': {'issues': {'nodes': nodes, 'pageInfo': {'hasNextPage': False, 'endCursor': None}}},
    }
    return resp


class BaseAppTest(unittest.TestCase):
    settings = None

    def setUp(self):
        self.app = create_app(self.settings or _settings())
        self.app.config['RELAY_NOW'] = lambda: NOW
        self.sleep = Mock()
        self.app.config['RELAY_SLEEP'] = self.sleep
        self.client = self.app.test_client()


class TestSettings(unittest.TestCase):
    def test_missing_discord_url(self):
        with self.assertRaises(ConfigError):
            create_app(Settings())

    def test_load_from_environ(self):
        settings = load_settings({
            'DISCORD_WEBHOOK_URL': 'https://discord.test/hook',
            'PORT': '9000',
            'DEBUG_MODE': 'true',
            'LINEAR_MAX_PAGES': '7',
        })
        self.assertEqual(settings.port, 9000)
        self.assertTrue(settings.debug)
        self.assertEqual(settings.linear_max_pages, 7)
        self.assertIsNone(settings.linear_api_key)
        self.assertEqual(settings.linear_timeout_seconds, 30)
        self.assertIsNone(settings.discord_timeout_seconds)

    def test_apps_keep_their_own_settings(self):
        a = create_app(_settings(discord_webhook_url='https://discord.test/a'))
        b = create_app(_settings(discord_webhook_url='https://discord.test/b'))
        self.assertEqual(a.config['RELAY_SETTINGS'].discord_webhook_url, 'https://discord.test/a')
        self.assertEqual(b.config['RELAY_SETTINGS'].discord_webhook_url, 'https://discord.test/b')


class TestMetaRoutes(BaseAppTest):
    def test_health(self):
        resp = self.client.get('/health')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json(), {'status': 'ok'})

    def test_root(self):
        data = self.client.get('/').get_json()
        self.assertEqual(data['service'], 'Linear-Discord Communication Relay')
        self.assertIn('/report/by-user', data['endpoints'])

    def test_unknown_path_is_json_404(self):
        resp = self.client.get('/nope')
        self.assertEqual(resp.status_code, 404)
        self.assertIn('error', resp.get_json())

    def test_webhook_requires_post(self):
        self.assertEqual(self.client.get('/webhook').status_code, 405)


class TestWebhookRoute(BaseAppTest):
    @patch('linear_relay.controller.send_discord_payload')
    def test_issue_forwarded(self, mock_send):
        resp = self.client.post('/webhook', json={
            'type': 'Issue', 'action': 'create', 'data': {'identifier': 'ENG-1', 'title': 'Bug'},
        })
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json(), {'status': 'forwarded'})
        mock_send.assert_called_once()
        url, payload = mock_send.call_args.args
        self.assertEqual(url, 'https://discord.test/hook')
        self.assertEqual(payload['embeds'][0]['title'], '🎯 New Issue Created')
        self.assertEqual(payload['embeds'][0]['timestamp'], '2026-10-19T12:00:00Z')

    @patch('linear_relay.controller.send_discord_payload')
    def test_unknown_type_acknowledged_without_forwarding(self, mock_send):
        resp = self.client.post('/webhook', json={'type': 'Reaction', 'action': 'create', 'data': {}})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json(), {'status': 'ignored'})
        mock_send.assert_not_called()

    @patch('linear_relay.controller.send_discord_payload')
    def test_invalid_json(self, mock_send):
        resp = self.client.post('/webhook', data='{not json', content_type='application/json')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json(), {'error': 'Invalid JSON'})
        mock_send.assert_not_called()

    @patch('linear_relay.controller.send_discord_payload')
    def test_envelope_not_object(self, mock_send):
        resp = self.client.post('/webhook', json=[1, 2, 3])
        self.assertEqual(resp.status_code, 400)
        mock_send.assert_not_called()

    @patch('linear_relay.controller.send_discord_payload')
    def test_malformed_data_is_server_error(self, mock_send):
        resp = self.client.post('/webhook', json={'type': 'Issue', 'action': 'create', 'data': 'oops'})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.get_json(), {'error': 'Error processing webhook'})
        mock_send.assert_not_called()

    @patch('linear_relay.controller.send_discord_payload')
    def test_discord_failure(self, mock_send):
        mock_send.side_effect = DiscordDeliveryError('discord returned status 500: down', status_code=500)
        resp = self.client.post('/webhook', json={'type': 'Project', 'action': 'update', 'data': {'name': 'P'}})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.get_json(), {'error': 'Error forwarding to Discord'})
        self.assertEqual(mock_send.call_count, 1)


class TestReportRoutesWithoutKey(BaseAppTest):
    settings = _settings(linear_api_key=None)

    def test_report_unavailable(self):
        for path in ('/report', '/report/by-user'):
            resp = self.client.get(path)
            self.assertEqual(resp.status_code, 503)
            self.assertEqual(resp.get_json(), {'error': 'LINEAR_API_KEY not configured'})


class TestReportRoutes(BaseAppTest):
    @patch('linear_relay.controller.send_discord_payload')
    @patch('linear_relay.linear.requests.post')
    def test_report_without_issues(self, mock_linear, mock_send):
        mock_linear.return_value = _page([])
        resp = self.client.post('/report')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json(), {'status': 'report_sent'})
        mock_send.assert_called_once()
        payload = mock_send.call_args.args[1]
        self.assertIn('No open issues found', payload['embeds'][0]['description'])

    @patch('linear_relay.controller.send_discord_payload')
    @patch('linear_relay.linear.requests.post')
    def test_report_upstream_failure(self, mock_linear, mock_send):
        mock_linear.return_value = Mock(status_code=500, text='internal')
        resp = self.client.get('/report')
        self.assertEqual(resp.status_code, 500)
        self.assertIn('linear API returned status 500', resp.get_json()['error'])
        mock_send.assert_not_called()

    @patch('linear_relay.controller.send_discord_payload')
    @patch('linear_relay.linear.requests.post')
    def test_report_malformed_page_info(self, mock_linear, mock_send):
        page = Mock(status_code=200, text='')
        page.json.return_value = {'data': {'issues': {'nodes': [], 'pageInfo': 'garbage'}}}
        mock_linear.return_value = page
        resp = self.client.get('/report')
        self.assertEqual(resp.status_code, 500)
        self.assertIn('failed to parse issues response', resp.get_json()['error'])
        mock_send.assert_not_called()

    @patch('linear_relay.controller.generate_user_tasks_report')
    def test_by_user_uses_configured_delay(self, mock_report):
        resp = self.client.get('/report/by-user')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json(), {'status': 'user_report_sent'})
        args, kwargs = mock_report.call_args
        self.assertEqual(args[2], 0.5)
        self.assertEqual(args[3], NOW)
        self.assertIs(kwargs['sleep'], self.sleep)

    @patch('linear_relay.controller.generate_user_tasks_report')
    def test_by_user_failure(self, mock_report):
        mock_report.side_effect = LinearAPIError('GraphQL errors: rate limited')
        resp = self.client.post('/report/by-user')
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.get_json(), {'error': 'GraphQL errors: rate limited'})


if __name__ == '__main__':
    unittest.main()
