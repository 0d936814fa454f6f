"""Application package for the EduSync learning platform backend.

This package exposes the service, repository, storage and model modules
used by the FastAPI application. It is intentionally lightweight;
individual modules contain the concrete implementations and documentation.
"""
