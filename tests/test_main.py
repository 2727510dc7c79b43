"""
KINNECT - Service Endpoint and Error Handler Tests
"""

import pytest

from tests.conftest import auth_headers


pytestmark = pytest.mark.timeout(30)


def test_welcome(client):
    response = client.get('/api')
    assert response.status_code == 200
    assert response.get_json() == {'success': True, 'message': 'Welcome to the KINNECT API', 'version': '1.0.0'}


def test_status_reports_environment(client):
    body = client.get('/api/status').get_json()
    assert body['status'] == 'operational'
    assert body['environment'] == 'testing'


def test_health_pings_database(client, db_session):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.get_json()['database'] == 'ok'


def test_metrics_exposition(client):
    client.get('/api')
    response = client.get('/metrics')
    assert response.status_code == 200
    assert b'kinnect_http_requests_total' in response.data


def test_unknown_route_is_json_404(client):
    response = client.get('/api/nothing-here')
    assert response.status_code == 404
    assert response.get_json() == {'success': False, 'message': 'Not Found - /api/nothing-here'}


def test_wrong_method_is_json_405(client):
    response = client.patch('/api')
    assert response.status_code == 405
    assert response.get_json()['success'] is False


def test_cors_headers_on_api(client):
    response = client.get('/api', headers={'Origin': 'https://app.kinnect.example'})
    assert response.headers.get('Access-Control-Allow-Origin') in ('*', 'https://app.kinnect.example')


def test_protected_route_without_token(client, db_session):
    response = client.get('/api/families')
    assert response.status_code == 401
    assert response.get_json()['message'] == 'Not authorized, no token'


def test_protected_route_with_garbage_token(client, db_session):
    response = client.get('/api/families', headers={'Authorization': 'Bearer not.a.jwt'})
    assert response.status_code == 401
    assert response.get_json()['message'] == 'Not authorized, token failed'


def test_token_for_deleted_user(client, test_user):
    from kinnect.models import db

    headers = auth_headers(test_user)
    db.session.delete(test_user)
    db.session.commit()
    assert client.get('/api/families', headers=headers).status_code == 401
