"""
Presentation Layer - API endpoints and request/response handling.

This layer contains:
- api/: FastAPI routers for threads and messages
- dependencies/: JWT auth dependency
"""
