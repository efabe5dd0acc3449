# backend/wsgi.py
from goldbook import create_app

app = create_app()
