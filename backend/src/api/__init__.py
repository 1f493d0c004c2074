"""
API package for the scheduling engine.

This package contains the FastAPI routers and their request/response models.
"""
