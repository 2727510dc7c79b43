"""
KINNECT - Authentication Utilities Unit Tests

Covers bcrypt password hashing, JWT generation/verification and the
`protect` bearer-token decorator.
"""

from datetime import datetime, timedelta

import jwt
import pytest

from kinnect.utils.auth_utils import (
    authenticate_user, generate_jwt_token, hash_password, verify_jwt_token, verify_password,
)
from tests.conftest import TEST_PASSWORD, auth_headers


# Add timeout to all tests to prevent hanging
pytestmark = pytest.mark.timeout(30)


class TestPasswordFunctions:
    """Test password-related utility functions"""

    def test_hash_password_is_bcrypt(self, app_context):
        """Hashes are salted bcrypt strings, never the plaintext"""
        hashed = hash_password('TestPassword123!')
        assert hashed != 'TestPassword123!'
        assert hashed.startswith('$2')
        assert hash_password('TestPassword123!') != hashed

    def test_verify_password(self, app_context):
        hashed = hash_password('TestPassword123!')
        assert verify_password('TestPassword123!', hashed) is True
        assert verify_password('WrongPassword123!', hashed) is False

    def test_verify_password_malformed_hash(self):
        assert verify_password('anything', 'not-a-bcrypt-hash') is False
        assert verify_password('', 'whatever') is False


class TestJWTFunctions:
    """Test JWT token generation and validation"""

    def test_round_trip(self, app_context):
        token = generate_jwt_token('user-123')
        payload = verify_jwt_token(token)
        assert payload['id'] == 'user-123'
        assert payload['exp'] > payload['iat']

    def test_expired_token_raises(self, app, app_context):
        payload = {
            'id': 'user-123',
            'exp': datetime.utcnow() - timedelta(seconds=5),
            'iat': datetime.utcnow() - timedelta(hours=1),
        }
        token = jwt.encode(payload, app.config['JWT_SECRET'], algorithm='HS256')
        with pytest.raises(jwt.ExpiredSignatureError):
            verify_jwt_token(token)

    def test_wrong_secret_raises(self, app_context):
        token = jwt.encode({'id': 'user-123'}, 'some-other-secret', algorithm='HS256')
        with pytest.raises(jwt.InvalidTokenError):
            verify_jwt_token(token)


class TestAuthenticateUser:

    def test_authenticate_is_case_insensitive_on_email(self, test_user):
        assert authenticate_user('TEST@example.com', TEST_PASSWORD).id == test_user.id

    def test_authenticate_wrong_password(self, test_user):
        assert authenticate_user('test@example.com', 'nope-nope') is None

    def test_authenticate_unknown_user(self, db_session):
        assert authenticate_user('ghost@example.com', TEST_PASSWORD) is None


class TestProtectDecorator:
    """Bearer token enforcement on protected routes"""

    def test_missing_token(self, client, db_session):
        response = client.get('/api/users/profile')
        assert response.status_code == 401
        assert response.get_json()['message'] == 'Not authorized, no token'

    def test_garbage_token(self, client, db_session):
        response = client.get('/api/users/profile', headers={'Authorization': 'Bearer garbage'})
        assert response.status_code == 401
        assert response.get_json()['message'] == 'Not authorized, token failed'

    def test_token_for_deleted_user(self, client, db_session):
        token = generate_jwt_token('3f1c1b4e-0000-4000-8000-000000000000')
        response = client.get('/api/users/profile', headers={'Authorization': f'Bearer {token}'})
        assert response.status_code == 401
        assert response.get_json()['message'] == 'Not authorized, token failed'

    def test_valid_token(self, client, test_user):
        response = client.get('/api/users/profile', headers=auth_headers(test_user))
        assert response.status_code == 200
        body = response.get_json()
        assert body['success'] is True
        assert body['user']['email'] == 'test@example.com'
        assert 'passwordHash' not in body['user']
