"""
asgi.py -- Application assembly for the planner API.

Run with:  uvicorn asgi:app --reload
           python asgi.py            (binds 0.0.0.0:$PORT, default 3000)
"""

import uvicorn

from api.main import app
from core.config import get_settings

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)
