#!/usr/bin/env python3
"""
Tests for the FastAPI endpoints. The query API is mocked.
"""

import os
import sys
import unittest
from unittest.mock import patch

import requests
from fastapi.testclient import TestClient

# Add the parent directory to the path to access api and utils
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from api import app
from utils.appsynergy_api import QueryAPIError


def create_test_rows():
    return [
        {'PART': 'KWS001', 'SKIDS': '1', 'QTY1': '10', 'CTNS': 'A', 'COST': '1', 'LABOR': '1'},
        {'PART': 'KWS001', 'SKIDS': '1', 'QTY1': '5', 'CTNS': 'A'},
        {'PART': 'KWS001', 'SKIDS': '1', 'QTY1': '3', 'CTNS': 'B'},
        {'PART': 'PALLET-STD', 'SKIDS': None, 'QTY1': '4'},
    ]


class TestHealth(unittest.TestCase):

    def setUp(self):
        self.client = TestClient(app)

    def test_root(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'healthy')

    def test_health(self):
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertIn('report', response.json()['endpoints'])


class TestProxyEndpoint(unittest.TestCase):

    def setUp(self):
        self.client = TestClient(app)

    @patch.dict(os.environ, {}, clear=True)
    def test_requires_api_key(self):
        response = self.client.post("/api", json={'sqlCmd': 'select 1'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {'status': 'ERROR', 'errorMessage': 'API Key is required'})

    @patch('api.forward_query')
    def test_forwards_response(self, mock_forward):
        mock_forward.return_value = (200, {'status': 'OK', 'data': {'columns': [], 'rows': []}})

        response = self.client.post("/api?apiKey=abc&action=EXEC_QUERY", json={'sqlCmd': 'select 1'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'OK')
        mock_forward.assert_called_once_with('select 1', response_format='JSON', action='EXEC_QUERY', api_key='abc')

    @patch('api.forward_query')
    def test_forwards_client_errors(self, mock_forward):
        mock_forward.return_value = (401, {'status': 'ERROR', 'errorMessage': 'Invalid API key'})
        response = self.client.post("/api?apiKey=abc", json={'sqlCmd': 'select 1'})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['errorMessage'], 'Invalid API key')

    @patch('api.forward_query')
    def test_server_errors_are_wrapped(self, mock_forward):
        upstream = {'status': 'ERROR', 'message': 'Database unavailable'}
        mock_forward.return_value = (503, upstream)

        response = self.client.post("/api?apiKey=abc", json={'sqlCmd': 'select 1'})

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json(), {
            'status': 'ERROR',
            'errorMessage': 'Database unavailable',
            'details': upstream
        })

    @patch('api.forward_query')
    def test_error_without_message(self, mock_forward):
        mock_forward.return_value = (500, {'status': 'ERROR'})
        response = self.client.post("/api?apiKey=abc", json={'sqlCmd': 'select 1'})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()['errorMessage'], 'Request failed with status code 500')

    @patch('api.forward_query')
    def test_transport_error(self, mock_forward):
        mock_forward.side_effect = requests.exceptions.ConnectionError("refused")
        response = self.client.post("/api?apiKey=abc", json={'sqlCmd': 'select 1'})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()['status'], 'ERROR')


class TestReportEndpoint(unittest.TestCase):

    def setUp(self):
        self.client = TestClient(app)
        self.declaration = {'id': 4821, 'visa': 'V-2024-0193', 'company_name': 'Acme'}

    @patch('api.fetch_declaration_rows')
    def test_build_report(self, mock_fetch):
        mock_fetch.return_value = create_test_rows()

        response = self.client.post("/api/report", json={'declaration': self.declaration})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body['success'])
        self.assertEqual(body['filename'], 'Shipment_Report_V-2024-0193.xlsx')

        report = body['report']
        self.assertEqual(report['header']['client_name'], 'Acme')
        self.assertEqual(len(report['line_items']), 1)
        self.assertEqual(report['line_items'][0]['qty'], 18)
        self.assertEqual(report['line_items'][0]['box_count'], 2)
        self.assertEqual(report['packaging_section'][-1], {'part': 'Total', 'description': '', 'qty': 4})
        self.assertEqual(body['table'][-1]['PO'], 'Total')
        self.assertEqual(body['packaging_table'][0], {'Packaging': 'Standard Wood Pallet', 'Quantity': 4})
        mock_fetch.assert_called_once_with(4821)

    @patch('api.fetch_declaration_rows')
    def test_edited_cells(self, mock_fetch):
        mock_fetch.return_value = create_test_rows()

        response = self.client.post("/api/report", json={
            'declaration': self.declaration,
            'editedCells': {'0': {'description': 'Harness'}}
        })

        body = response.json()
        self.assertEqual(body['line_items'][0]['description'], 'Harness')
        self.assertEqual(body['report']['line_items'][0]['description'], '')
        self.assertEqual(body['table'][0]['DESCRIPTION'], 'Harness')

    def test_requires_declaration(self):
        response = self.client.post("/api/report", json={})
        self.assertEqual(response.status_code, 400)
        response = self.client.post("/api/report", json={'declaration': {'visa': 'V-1'}})
        self.assertEqual(response.status_code, 400)

    @patch('api.fetch_declaration_rows')
    def test_upstream_failure(self, mock_fetch):
        mock_fetch.side_effect = QueryAPIError("API returned an error: Table not found")

        response = self.client.post("/api/report", json={'declaration': self.declaration})

        self.assertEqual(response.status_code, 502)
        body = response.json()
        self.assertFalse(body['success'])
        self.assertIsNone(body['report'])
        self.assertIn('Table not found', body['errorMessage'])

    @patch.dict(os.environ, {'APPSYNERGY_API_KEY': 'secret', 'VISA_SQL_CMD': 'select * from t where id = {ID_FROM_TABLE}'})
    @patch('utils.appsynergy_api.requests.post')
    def test_malformed_query_result(self, mock_post):
        mock_post.return_value.status_code = 200
        mock_post.return_value.json.return_value = {
            'status': 'OK',
            'data': {'columns': [{'columnName': 'PART'}], 'rows': ['not-a-row']}
        }

        response = self.client.post("/api/report", json={'declaration': self.declaration})

        self.assertEqual(response.status_code, 502)
        body = response.json()
        self.assertFalse(body['success'])
        self.assertIsNone(body['report'])
        self.assertIn('row 0', body['errorMessage'])

    @patch('api.fetch_declaration_rows')
    def test_malformed_rows(self, mock_fetch):
        mock_fetch.return_value = None
        response = self.client.post("/api/report", json={'declaration': self.declaration})
        self.assertEqual(response.status_code, 422)
        self.assertIsNone(response.json()['report'])


class TestDeclarationsEndpoint(unittest.TestCase):

    def setUp(self):
        self.client = TestClient(app)

    @patch('api.list_declarations')
    def test_list(self, mock_list):
        mock_list.return_value = [{'id': 1, 'visa': 'V-1'}]
        response = self.client.get("/api/declarations")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['declarations'], [{'id': 1, 'visa': 'V-1'}])

    @patch('api.list_declarations')
    def test_upstream_failure(self, mock_list):
        mock_list.side_effect = QueryAPIError("API returned an error: timeout")
        response = self.client.get("/api/declarations")
        self.assertEqual(response.status_code, 502)


if __name__ == '__main__':
    unittest.main()
