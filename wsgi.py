"""
WSGI / Flask-Migrate entry point.

Usage:
    flask --app wsgi seed-all
    flask --app wsgi db migrate -m "description"
    gunicorn wsgi:app
"""

from marketplace import create_app

app = create_app()
