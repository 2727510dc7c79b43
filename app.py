#!/usr/bin/env python3
"""
KINNECT application entry point.

This module selects configuration based on environment variables and creates
the Flask application via `create_app`. When executed directly, it runs the
development server on PORT. In production, a WSGI server should import `app`
from this module.

Environment variables of interest:
- FLASK_ENV (or NODE_ENV): 'testing' enables in-memory DB and testing flags.
- DATABASE_URL, JWT_SECRET, AWS_*, mail settings: consumed by `create_app`.
"""

import logging
import os

from kinnect import create_app
from kinnect.config import current_environment

logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO'),
    format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
)
logger = logging.getLogger('kinnect')

if current_environment() in ('testing', 'test'):
    # Use test configuration for testing environment
    test_config = {
        'TESTING': True,
        'ENV_NAME': 'testing',
        'SQLALCHEMY_DATABASE_URI': os.getenv('DATABASE_URL', 'sqlite:///:memory:'),
        'SECRET_KEY': os.getenv('SECRET_KEY', 'test-secret-key'),
        'JWT_SECRET': os.getenv('JWT_SECRET', 'test-jwt-secret'),
        'JWT_EXPIRES_IN': 3600,
        'AWS_S3_BUCKET': os.getenv('AWS_S3_BUCKET'),
        'AWS_REGION': os.getenv('AWS_REGION', 'us-east-1'),
        'MAIL_SUPPRESS_SEND': True,
        'MAIL_DEFAULT_SENDER': 'test@example.com',
        'RATELIMIT_ENABLED': False,
        'EXPOSE_ERROR_DETAILS': True,
    }
    app = create_app(test_config)
else:
    app = create_app()

if __name__ == '__main__':
    port = int(os.getenv('PORT', 5000))
    logger.info(f"Starting KINNECT API on port {port} ({current_environment()})")
    app.run(debug=current_environment() == 'development', host='0.0.0.0', port=port)
