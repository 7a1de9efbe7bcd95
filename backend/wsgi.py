# backend/wsgi.py
from qpos import create_app

app = create_app()
