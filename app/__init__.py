"""
Flask application factory for the manga-lens batch web service.

This module creates and configures the Flask application with:
- Uploads root for browser-submitted folders
- Template and static file paths
- JSON error handlers for request-level failures
- Blueprint registration for routes
"""

from flask import Flask, jsonify, request
import os
import logging
from werkzeug.exceptions import HTTPException
from whitenoise import WhiteNoise

from mangalens.config import get_config
from mangalens.errors import MangaLensError


def create_app(config=None):
    """
    Create and configure the Flask application.

    Args:
        config: Optional configuration dictionary to override defaults

    Returns:
        Flask: Configured Flask application instance
    """
    app = Flask(__name__,
                template_folder='../mangalens/templates',
                static_folder='../assets',
                static_url_path='/assets')

    settings = get_config()

    # Default configuration
    app.config['UPLOADS_ROOT'] = os.path.abspath(settings['uploads_dir'])
    app.config['MAX_CONTENT_LENGTH'] = 512 * 1024 * 1024  # whole-chapter uploads
    app.config['GEMINI_MODEL_NAME'] = settings['gemini']['model']
    app.config['DEFAULT_PROMPT'] = settings['prompt']

    # Override with custom config if provided
    if config:
        app.config.update(config)

    os.makedirs(app.config['UPLOADS_ROOT'], exist_ok=True)

    # Configure logging
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # ------------------------------------------------------------------
    # Error handlers
    # ------------------------------------------------------------------

    @app.errorhandler(MangaLensError)
    def handle_request_error(err):
        # Missing key, bad directory: the whole request fails before any work.
        app.logger.warning("Request rejected: %s", err)
        return jsonify({'error': str(err)}), 400

    @app.errorhandler(Exception)
    def handle_unexpected(err):
        # Preserve Werkzeug HTTPExceptions (they already have good semantics).
        if isinstance(err, HTTPException):
            return err
        app.logger.error("Unhandled server error", exc_info=err)
        return jsonify({'error': str(err)}), 500

    from . import routes
    app.register_blueprint(routes.bp)

    @app.after_request
    def add_cache_headers(response):
        """
        Directory contents change while batches run, so API responses are
        never cached. Static assets are handled by WhiteNoise.
        """
        if 'Cache-Control' in response.headers:
            return response
        if request.path.startswith('/api/'):
            response.headers['Cache-Control'] = 'no-store'
        return response

    # Wrap app with WhiteNoise for static file serving
    # This must happen AFTER all routes are registered
    app.wsgi_app = WhiteNoise(
        app.wsgi_app,
        root=os.path.join(os.path.dirname(__file__), '..', 'assets'),
        prefix='/assets/',
        max_age=3600,
    )

    return app
