"""
Domain layer for the Wookie Books API.

This package provides:
- SQLAlchemy models and async repositories for users and books
- bcrypt password hashing and JWT bearer tokens
- The login flow and self-service account operations
- Book catalog queries and owner-checked book mutations
"""
