"""
Prometheus metric helpers and their wiring into uploads and account deletion.
"""

from prometheus_client import REGISTRY

from kinnect.utils.prom_metrics import observe_account_deletion, observe_media_upload, observe_request
from tests.conftest import TEST_PASSWORD, auth_headers


def sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_observe_request_counts_by_route():
    before = sample('kinnect_http_requests_total', endpoint='/api/things', method='GET', status='200')
    observe_request('/api/things', 'GET', 200, 0.01)
    assert sample('kinnect_http_requests_total', endpoint='/api/things', method='GET', status='200') == before + 1


def test_observe_media_upload_tracks_bytes():
    before = sample('kinnect_media_upload_bytes_count')
    observe_media_upload('image', 'success', 2048)
    observe_media_upload('image', 'rejected')
    assert sample('kinnect_media_upload_bytes_count') == before + 1


def test_account_deletion_outcomes(client, test_user):
    before = sample('kinnect_account_deletions_total', outcome='deleted')
    response = client.delete('/api/users/profile', json={'password': TEST_PASSWORD}, headers=auth_headers(test_user))
    assert response.status_code == 200
    assert sample('kinnect_account_deletions_total', outcome='deleted') == before + 1


def test_failed_deletion_outcome_helper():
    before = sample('kinnect_account_deletions_total', outcome='failed')
    observe_account_deletion('failed')
    assert sample('kinnect_account_deletions_total', outcome='failed') == before + 1
