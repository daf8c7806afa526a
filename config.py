from dotenv import load_dotenv
import os

load_dotenv('.env')


def _env_bool(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', os.urandom(24).hex())

    # Upstream trends provider
    SERPAPI_KEY = os.getenv('SERPAPI_KEY', '')
    SERPAPI_URL = os.getenv('SERPAPI_URL', 'https://serpapi.com/search.json')
    TRENDS_GEO = os.getenv('TRENDS_GEO', 'US')
    TRENDS_DATE = os.getenv('TRENDS_DATE', 'today 12-m')
    UPSTREAM_TIMEOUT = float(os.getenv('UPSTREAM_TIMEOUT', '10'))
    MAX_WORKERS = int(os.getenv('MAX_WORKERS', '5'))

    # Per-client rate limiting
    RATE_LIMIT = int(os.getenv('RATE_LIMIT', '10'))
    RATE_LIMIT_WINDOW = int(os.getenv('RATE_LIMIT_WINDOW', '60'))
    RATE_LIMIT_MAXSIZE = int(os.getenv('RATE_LIMIT_MAXSIZE', '100'))

    # Flask-Caching
    CACHE_TYPE = os.getenv('CACHE_TYPE', 'SimpleCache')
    CACHE_DEFAULT_TIMEOUT = 300
    TRENDING_CACHE_TIMEOUT = int(os.getenv('TRENDING_CACHE_TIMEOUT', '300'))

    FORCE_HTTPS = _env_bool('FORCE_HTTPS', os.getenv('FLASK_ENV') == 'production')

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
    LOG_FILE = os.getenv('LOG_FILE', 'trendboard.log')


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    SERPAPI_KEY = 'test-key'
    CACHE_TYPE = 'NullCache'
    FORCE_HTTPS = False
    LOG_FILE = ''
