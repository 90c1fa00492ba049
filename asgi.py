"""
asgi.py -- The served AdminDesk application.

api/ and web/ never import each other; this module is where the two meet.
The JSON API app from api.main gets the HTML page routes added on top.

Run with:  uvicorn asgi:app --reload
"""

from api.main import app
from web.routes import router as web_router

app.include_router(web_router, tags=["Web UI"])
