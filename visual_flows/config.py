import os
from dotenv import load_dotenv

load_dotenv()


def normalize_database_url(url):
    """Point postgres URLs at the psycopg2 driver; other URLs pass through."""
    if url.startswith('postgres://'):
        return url.replace('postgres://', 'postgresql+psycopg2://', 1)
    elif url.startswith('postgresql://') and '+psycopg2' not in url:
        return url.replace('postgresql://', 'postgresql+psycopg2://', 1)
    return url


def _split_csv(value):
    return [item.strip() for item in value.split(',') if item.strip()]


class Config:
    # Database
    _db_url = os.getenv('DATABASE_URL', 'sqlite:///visual_flows.db')
    SQLALCHEMY_DATABASE_URI = normalize_database_url(_db_url)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Security
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')

    # Flask
    FLASK_ENV = os.getenv('FLASK_ENV', 'development')
    DEBUG = os.getenv('FLASK_ENV') == 'development'
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # CORS
    CORS_ORIGINS = _split_csv(os.getenv('CORS_ORIGINS', 'http://localhost:5173'))

    # Flow engine
    # Variables listed here (or prefixed with FLOW_PUBLIC_) are exposed to flows as $env
    FLOW_ENV_ALLOWLIST = _split_csv(os.getenv('FLOW_ENV_ALLOWLIST', ''))
    FLOW_ENV_PREFIX = os.getenv('FLOW_ENV_PREFIX', 'FLOW_PUBLIC_')
    FLOW_SLEEP_MAX_SECONDS = float(os.getenv('FLOW_SLEEP_MAX_SECONDS', '300'))
    FLOW_HTTP_TIMEOUT = float(os.getenv('FLOW_HTTP_TIMEOUT', '30'))


class TestingConfig(Config):
    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    FLOW_ENV_ALLOWLIST = []
    FLOW_SLEEP_MAX_SECONDS = 1.0
