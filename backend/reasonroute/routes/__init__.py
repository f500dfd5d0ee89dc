"""
HTTP route modules mounted by the FastAPI application factory.
"""
