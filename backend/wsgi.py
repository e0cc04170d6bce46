# backend/wsgi.py
# Entry point for the Flask CLI: FLASK_APP=wsgi.py
from stockswift import create_app

app = create_app()
