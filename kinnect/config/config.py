"""
Application Configuration

FLOW OVERVIEW
- Config.__init__
  • Reads FLASK_ENV (falling back to NODE_ENV) to select which .env file to load (dev/prod). Testing bypasses file load.
- Properties expose configuration values, defaulting to sensible development-safe defaults.
"""

import os
from dotenv import load_dotenv


def current_environment():
    """Return the deployment environment name ('development', 'production', 'testing')."""
    return os.getenv('FLASK_ENV') or os.getenv('NODE_ENV') or 'development'


class Config:
    """Base configuration class"""

    def __init__(self):
        env_name = current_environment()
        if env_name in ('testing', 'test'):
            # For testing, don't load config files, use environment variables directly
            pass
        elif env_name == 'production':
            load_dotenv('config.prod.env')
        else:
            load_dotenv('config.env')  # Default to development
        self.ENV_NAME = current_environment()

    @property
    def SECRET_KEY(self):
        """Application secret key"""
        return os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')

    @property
    def SQLALCHEMY_DATABASE_URI(self):
        """Database connection URI"""
        return os.getenv('DATABASE_URL', 'sqlite:///kinnect.db')

    @property
    def SQLALCHEMY_TRACK_MODIFICATIONS(self):
        """SQLAlchemy track modifications setting"""
        return False

    @property
    def JWT_SECRET(self):
        """Secret used to sign bearer tokens"""
        return os.getenv('JWT_SECRET', 'jwt-secret-key-change-in-production')

    @property
    def JWT_EXPIRES_IN(self):
        """Bearer token lifetime in seconds (30 days)"""
        return int(os.getenv('JWT_EXPIRES_IN', 30 * 24 * 3600))

    @property
    def AWS_REGION(self):
        """Region of the media bucket"""
        return os.getenv('AWS_REGION', 'us-east-1')

    @property
    def AWS_ACCESS_KEY_ID(self):
        return os.getenv('AWS_ACCESS_KEY_ID')

    @property
    def AWS_SECRET_ACCESS_KEY(self):
        return os.getenv('AWS_SECRET_ACCESS_KEY')

    @property
    def AWS_S3_BUCKET(self):
        """Bucket that stores uploaded media"""
        return os.getenv('AWS_S3_BUCKET')

    @property
    def MAX_UPLOAD_SIZE(self):
        """Largest accepted media upload in bytes (10 MB)"""
        return int(os.getenv('MAX_UPLOAD_SIZE', 10 * 1024 * 1024))

    @property
    def MAX_CONTENT_LENGTH(self):
        """Hard request body limit, leaves room for multipart overhead"""
        return self.MAX_UPLOAD_SIZE + 1024 * 1024

    @property
    def PORT(self):
        return int(os.getenv('PORT', 5000))

    @property
    def RATELIMIT_ENABLED(self):
        """Whether the per-IP rate limiter is active"""
        return os.getenv('RATELIMIT_ENABLED', 'True').lower() == 'true'

    @property
    def EXPOSE_ERROR_DETAILS(self):
        """Include raw exception text in 500 responses (never in production)"""
        default = 'False' if self.ENV_NAME == 'production' else 'True'
        return os.getenv('EXPOSE_ERROR_DETAILS', default).lower() == 'true'

    @property
    def CORS_ORIGINS(self):
        """Allowed CORS origins; '*' outside production"""
        if self.ENV_NAME != 'production':
            return '*'
        raw = os.getenv('ALLOWED_ORIGINS', '')
        return [origin.strip() for origin in raw.split(',') if origin.strip()]

    @property
    def MAIL_SERVER(self):
        """Mail server hostname"""
        return os.getenv('MAIL_SERVER', 'smtp.gmail.com')

    @property
    def MAIL_PORT(self):
        """Mail server port"""
        return int(os.getenv('MAIL_PORT', 587))

    @property
    def MAIL_USE_TLS(self):
        """Whether to use TLS for mail"""
        return os.getenv('MAIL_USE_TLS', 'True').lower() == 'true'

    @property
    def MAIL_USE_SSL(self):
        """Whether to use SSL for mail"""
        return os.getenv('MAIL_USE_SSL', 'False').lower() == 'true'

    @property
    def MAIL_USERNAME(self):
        return os.getenv('MAIL_USERNAME')

    @property
    def MAIL_PASSWORD(self):
        return os.getenv('MAIL_PASSWORD')

    @property
    def MAIL_DEFAULT_SENDER(self):
        """Default sender email address"""
        return os.getenv('MAIL_DEFAULT_SENDER', 'no-reply@kinnect.app')

    @property
    def MAIL_SUPPRESS_SEND(self):
        """Skip real SMTP delivery (development default)"""
        default = 'False' if self.ENV_NAME == 'production' else 'True'
        return os.getenv('MAIL_SUPPRESS_SEND', default).lower() == 'true'
