"""Pydantic schemas for request validation and response bodies.

- **errors**: The body every failed request returns
- **users**: Request and response models of the users resource
"""
