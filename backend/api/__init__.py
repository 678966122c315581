"""
API package - HTTP-boundary plumbing shared by the route blueprints.

- middleware/: request id, error envelope, request logging
- schemas.py: pydantic models for request bodies and query strings
"""
