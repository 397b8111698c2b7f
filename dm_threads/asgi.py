"""
ASGI entry point.

    uvicorn dm_threads.asgi:app --host 0.0.0.0 --port 8080
"""

from dm_threads.fastapi_app import create_fastapi_app

app = create_fastapi_app()
