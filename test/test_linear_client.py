#!/usr/bin/env python3
import unittest
from unittest.mock import Mock, patch

import requests

from linear_relay.linear import OPEN_ISSUES_QUERY, LinearAPIError, LinearClient

API_URL = 'https://api.linear.app/graphql'


def _node(n, state_type='started'):
    return {
        'id': f'id-{n}',
        'identifier': f'ENG-{n}',
        'title': f'Issue {n}',
        'priority': 3,
        'priorityLabel': 'Medium',
        'url': f'https://linear.app/eng/issue/ENG-{n}',
        'createdAt': '2026-10-01T10:00:00.000Z',
        'updatedAt': '2026-10-18T10:00:00.000Z',
        'state': {'id': 's', 'name': 'In Progress', 'color': '#fff', 'type': state_type},
        'assignee': None,
        'team': {'id': 't', 'name': 'Engineering', 'key': 'ENG'},
        'labels': {'nodes': []},
    }


def _page(nodes, has_next, cursor=None):
    resp = Mock(status_code=200, text='')
    resp.json.return_value = {
        'data': {'issues': {'nodes': nodes, 'pageInfo': {'hasNextPage': has_next, 'endCursor': cursor}}},
    }
    return resp


class TestLinearClient(unittest.TestCase):
    def setUp(self):
        self.client = LinearClient(api_key='lin_api_test', api_url=API_URL, timeout=30, max_pages=5)

    @patch('linear_relay.linear.requests.post')
    def test_follows_cursor_until_last_page(self, mock_post):
        mock_post.side_effect = [
            _page([_node(1), _node(2)], True, 'c1'),
            _page([_node(3)], False, 'c2'),
        ]

        issues = self.client.fetch_all_open_issues()

        self.assertEqual([i.identifier for i in issues], ['ENG-1', 'ENG-2', 'ENG-3'])
        self.assertEqual(mock_post.call_count, 2)

        first, second = mock_post.call_args_list
        self.assertEqual(first.args[0], API_URL)
        self.assertEqual(first.kwargs['json'], {'query': OPEN_ISSUES_QUERY})
        self.assertEqual(second.kwargs['json']['variables'], {'cursor': 'c1'})
        self.assertEqual(first.kwargs['headers']['Authorization'], 'lin_api_test')
        self.assertEqual(first.kwargs['timeout'], 30)

    def test_query_filters_closed_states(self):
        self.assertIn('nin: ["completed", "canceled"]', OPEN_ISSUES_QUERY)
        self.assertIn('first: 100', OPEN_ISSUES_QUERY)

    @patch('linear_relay.linear.requests.post')
    def test_page_cap(self, mock_post):
        mock_post.side_effect = [_page([_node(i)], True, f'c{i}') for i in range(10)]
        issues = self.client.fetch_all_open_issues()
        self.assertEqual(mock_post.call_count, 5)
        self.assertEqual(len(issues), 5)

    @patch('linear_relay.linear.requests.post')
    def test_missing_cursor_stops(self, mock_post):
        mock_post.side_effect = [_page([_node(1)], True, None)]
        self.assertEqual(len(self.client.fetch_all_open_issues()), 1)

    @patch('linear_relay.linear.requests.post')
    def test_http_error(self, mock_post):
        mock_post.return_value = Mock(status_code=401, text='unauthorized')
        with self.assertRaises(LinearAPIError) as ctx:
            self.client.fetch_all_open_issues()
        self.assertEqual(ctx.exception.status_code, 401)
        self.assertIn('unauthorized', str(ctx.exception))

    @patch('linear_relay.linear.requests.post')
    def test_graphql_errors(self, mock_post):
        resp = Mock(status_code=200, text='')
        resp.json.return_value = {'errors': [{'message': 'Argument Validation Error'}]}
        mock_post.return_value = resp
        with self.assertRaises(LinearAPIError) as ctx:
            self.client.fetch_all_open_issues()
        self.assertIn('Argument Validation Error', str(ctx.exception))

    @patch('linear_relay.linear.requests.post')
    def test_transport_error(self, mock_post):
        mock_post.side_effect = requests.Timeout('timed out')
        with self.assertRaises(LinearAPIError):
            self.client.fetch_all_open_issues()

    @patch('linear_relay.linear.requests.post')
    def test_invalid_json(self, mock_post):
        resp = Mock(status_code=200, text='<html>')
        resp.json.side_effect = ValueError('no json')
        mock_post.return_value = resp
        with self.assertRaises(LinearAPIError):
            self.client.fetch_all_open_issues()

    @patch('linear_relay.linear.requests.post')
    def test_page_info_not_object(self, mock_post):
        resp = Mock(status_code=200, text='')
        resp.json.return_value = {'data': {'issues': {'nodes': [], 'pageInfo': 'garbage'}}}
        mock_post.return_value = resp
        with self.assertRaises(LinearAPIError) as ctx:
            self.client.fetch_all_open_issues()
        self.assertIn('failed to parse issues response', str(ctx.exception))

    @patch('linear_relay.linear.requests.post')
    def test_cursor_not_string(self, mock_post):
        mock_post.return_value = _page([_node(1)], True, 42)
        with self.assertRaises(LinearAPIError):
            self.client.fetch_all_open_issues()

    @patch('linear_relay.linear.requests.post')
    def test_errors_not_list(self, mock_post):
        resp = Mock(status_code=200, text='')
        resp.json.return_value = {'errors': 5}
        mock_post.return_value = resp
        with self.assertRaises(LinearAPIError) as ctx:
            self.client.fetch_all_open_issues()
        self.assertIn('failed to parse response', str(ctx.exception))

    @patch('linear_relay.linear.requests.post')
    def test_malformed_node(self, mock_post):
        mock_post.return_value = _page([{'identifier': 'ENG-1', 'priority': 'high'}], False)
        with self.assertRaises(LinearAPIError) as ctx:
            self.client.fetch_all_open_issues()
        self.assertIn('failed to parse issues response', str(ctx.exception))


if __name__ == '__main__':
    unittest.main()
