"""
WSGI entry point for production deployment.

This module creates the Flask application instance for WSGI servers
like gunicorn, uWSGI, or mod_wsgi.

Usage with gunicorn:
    gunicorn -w 1 -b 0.0.0.0:5173 --timeout 0 wsgi:app

Batch requests run one model call per page inside the request, so keep
worker timeouts generous.
"""

from app import create_app

# Create Flask application instance
app = create_app()

if __name__ == '__main__':
    # For local development only (use `mangalens serve` instead)
    app.run(debug=True, port=5173)
