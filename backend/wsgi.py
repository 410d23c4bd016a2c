# backend/wsgi.py
from retailstock import create_app

app = create_app()
