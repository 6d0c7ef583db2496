"""
FastAPI RESTful API for the Wookie Books catalog.

This module provides a REST API for:
- User registration, login and self-service profile management
- Public book catalog browsing and filtering
- Owner-only book publishing, editing and unpublishing
- Bearer token authentication
"""
