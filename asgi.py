"""
asgi.py -- ASGI entry point for the forum API.

This is where process-wide configuration is read: get_settings() runs once
here and the resulting Settings is handed to create_app(). A missing or short
SECRET_KEY raises during this import, so the server never starts without a
signing secret.

Run with:  uvicorn asgi:app --reload
           python main.py serve
"""

from api.main import configure_logging, create_app
from core.config import get_settings

configure_logging()
app = create_app(get_settings())
