"""
Test configuration and shared fixtures for KINNECT tests.

This file contains:
- Centralized test configuration
- Shared fixtures used across multiple test files (app, client, users, families)
- Common test utilities (auth headers, S3 stub)
"""

import io
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image

from kinnect import create_app
from kinnect.models import db, Family, FamilyMember, User, ADMIN_PERMISSIONS
from kinnect.utils.api_utils import rate_limiter
from kinnect.utils.auth_utils import generate_jwt_token, hash_password


# Centralized test configuration
TEST_CONFIG = {
    'TESTING': True,
    'ENV_NAME': 'testing',
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SECRET_KEY': 'test-secret-key',
    'JWT_SECRET': 'test-jwt-secret',
    'JWT_EXPIRES_IN': 3600,
    'BCRYPT_ROUNDS': 4,
    'AWS_S3_BUCKET': 'kinnect-test',
    'AWS_REGION': 'us-east-1',
    'AWS_ACCESS_KEY_ID': 'test-access-key',
    'AWS_SECRET_ACCESS_KEY': 'test-secret',
    'MAX_UPLOAD_SIZE': 10 * 1024 * 1024,
    'MAIL_SUPPRESS_SEND': True,
    'MAIL_DEFAULT_SENDER': 'test@example.com',
    'RATELIMIT_ENABLED': False,
    'EXPOSE_ERROR_DETAILS': True,
}

TEST_PASSWORD = 'secret123'


@pytest.fixture
def app():
    """Create and configure a new app instance for each test."""
    app = create_app(TEST_CONFIG)
    rate_limiter.reset()
    return app


@pytest.fixture
def client(app):
    """Create a test client for the app."""
    return app.test_client()


@pytest.fixture
def app_context(app):
    """Create an application context for database operations."""
    with app.app_context():
        yield


@pytest.fixture
def db_session(app_context):
    """Create a database session and clean up after tests."""
    db.create_all()
    yield db.session
    db.session.remove()
    db.drop_all()


def make_user(email, first_name='Test', last_name='User', password=TEST_PASSWORD):
    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
    )
    db.session.add(user)
    db.session.commit()
    return user


def make_family(creator, name='Smiths', members=()):
    """Family created by `creator` (admin) plus (user, role) member pairs"""
    family = Family(name=name, created_by=creator.id)
    db.session.add(family)
    db.session.flush()
    db.session.add(FamilyMember(
        family_id=family.id, user_id=creator.id, role='admin', permissions=list(ADMIN_PERMISSIONS),
    ))
    for user, role in members:
        db.session.add(FamilyMember(family_id=family.id, user_id=user.id, role=role, permissions=['view']))
    db.session.commit()
    return family


def auth_headers(user):
    return {'Authorization': f'Bearer {generate_jwt_token(user.id)}'}


def png_bytes(size=(640, 480), color=(200, 30, 30)):
    buffer = io.BytesIO()
    Image.new('RGB', size, color).save(buffer, format='PNG')
    return buffer.getvalue()


@pytest.fixture
def test_user(db_session):
    """Create a test user for testing."""
    return make_user('test@example.com', 'Tess', 'Smith')


@pytest.fixture
def other_user(db_session):
    return make_user('other@example.com', 'Otto', 'Smith')


@pytest.fixture
def outsider(db_session):
    return make_user('outsider@example.com', 'Olive', 'Jones')


@pytest.fixture
def family(test_user, other_user):
    """Family created by test_user with other_user as a plain member."""
    return make_family(test_user, members=[(other_user, 'member')])


@pytest.fixture
def s3_mock():
    """Replace the boto3 client used by file storage with a MagicMock."""
    client = MagicMock()
    with patch('kinnect.utils.file_storage.boto3.client', return_value=client):
        yield client
