"""
Batch image-edit service package.

Exposes the single-flight queue processor, request assembly for the image-edit
API, error classification, and the FastAPI application that fronts them.
"""
