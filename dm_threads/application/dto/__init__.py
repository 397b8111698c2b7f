"""Data Transfer Objects (Pydantic) for the thread API and event payloads."""
