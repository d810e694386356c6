"""API-specific utilities.

- **responses**: The orjson-backed default response class
"""
