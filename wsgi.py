"""
WSGI / Flask-Migrate entry point.

Usage:
    gunicorn wsgi:app
    flask --app wsgi db init       # first time only (creates migrations/)
    flask --app wsgi db migrate -m "description"
    flask --app wsgi db upgrade
    flask --app wsgi create-credential --kind admin --corporate-id A100 \
        --email a100@example.com --role adminL1 --name "Asha Rao"
"""

from ideabox import create_app

app = create_app()
