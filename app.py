import os
import logging
from functools import wraps

from flask import Flask, request, jsonify, render_template, current_app
from flask_caching import Cache
from flask_talisman import Talisman
from werkzeug.exceptions import HTTPException

from api_integrations import SerpApiTrendsClient, TrendsAPIError
from config import Config
from rate_limiter import RateLimiter, client_identifier
from trends import fetch_trending_products

cache = Cache()

_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
_logging_configured = False

logger = logging.getLogger(__name__)


def setup_logging(log_level='INFO', log_file=''):
    """Configure application logging."""
    global _logging_configured
    if _logging_configured:
        return

    # Create formatter for consistent log format
    formatter = logging.Formatter(_LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Setup console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Setup file handler
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    _logging_configured = True


def rate_limit(func):
    """Reject callers that exceeded their request quota with a 429."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        limiter = current_app.extensions['rate_limiter']
        client_id = client_identifier(request)
        if not limiter.check_and_increment(client_id):
            return jsonify({'error': 'Rate limit exceeded. Please try again later.'}), 429
        return func(*args, **kwargs)
    return wrapper


def create_app(config_object=None, trends_client=None, rate_limiter=None):
    """Build the Flask app; the trends client and rate limiter may be injected."""
    app = Flask(__name__)
    app.config.from_object(config_object or Config)

    setup_logging(app.config['LOG_LEVEL'], app.config['LOG_FILE'])

    # Secure headers; HTTPS enforcement is opt-in through FORCE_HTTPS
    Talisman(app, force_https=app.config['FORCE_HTTPS'], content_security_policy={
        'default-src': ["'self'", 'https:'],
        'script-src': ["'self'", 'https:', "'unsafe-inline'"],
        'style-src': ["'self'", 'https:', "'unsafe-inline'"],
        'img-src': ["'self'", 'data:', 'https:'],
        'connect-src': ["'self'", 'https:'],
        'font-src': ["'self'", 'https:', 'data:']
    })

    cache.init_app(app)

    app.extensions['trends_client'] = trends_client or SerpApiTrendsClient.from_config(app.config)
    app.extensions['rate_limiter'] = rate_limiter or RateLimiter(
        limit=app.config['RATE_LIMIT'],
        window=app.config['RATE_LIMIT_WINDOW'],
        maxsize=app.config['RATE_LIMIT_MAXSIZE'],
    )

    @app.before_request
    def log_request_info():
        """Log information about incoming requests."""
        logger.info(f'Request: {request.method} {request.url}')
        if os.environ.get('FLASK_ENV') != 'production':
            logger.debug(f'Headers: {request.headers}')

    @app.after_request
    def log_response_info(response):
        """Log information about outgoing responses."""
        logger.info(f'Response: {response.status}')
        return response

    @app.route('/')
    def home():
        """Serve the dashboard page."""
        logger.info("Home page accessed")
        return render_template('index.html')

    @app.route('/healthz')
    def healthz():
        return jsonify({'status': 'ok'})

    @app.route('/api/trending-products')
    @rate_limit
    def trending_products():
        """Aggregate trend data for the requested terms."""
        queries = request.args.getlist('q')
        logger.info(f"Received queries: {queries}")

        client = current_app.extensions['trends_client']
        max_workers = current_app.config['MAX_WORKERS']

        if not any(q.strip() for q in queries):
            # The trending-now list is shared by every visitor, cache it briefly
            cache_key = f"trending_now:{client.geo}"
            cached = cache.get(cache_key)
            if cached:
                logger.info("Cache hit for trending searches")
                return jsonify(cached)
            payload = fetch_trending_products(client, [], max_workers=max_workers).to_dict()
            cache.set(cache_key, payload, timeout=current_app.config['TRENDING_CACHE_TIMEOUT'])
            return jsonify(payload)

        report = fetch_trending_products(client, queries, max_workers=max_workers)
        return jsonify(report.to_dict())

    @app.errorhandler(TrendsAPIError)
    def handle_trends_error(e):
        """Report upstream and parse failures as structured JSON."""
        logger.error(f"Error fetching product searches: {e.message} ({e.details})")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(Exception)
    def handle_exception(e):
        """Global exception handler for all routes."""
        if isinstance(e, HTTPException):
            return e

        logger.error(f"Unhandled exception: {str(e)}", exc_info=True)
        return jsonify({'error': 'Error fetching product searches'}), 500

    if not app.config['SERPAPI_KEY']:
        logger.warning("SERPAPI_KEY is not set. Trend lookups will fail until it is configured.")

    return app


if __name__ == '__main__':
    # Get port from environment variable or use default
    port = int(os.environ.get('PORT', 5000))
    debug = os.environ.get('FLASK_ENV') == 'development'

    app = create_app()
    app.run(host='0.0.0.0', port=port, debug=debug)
