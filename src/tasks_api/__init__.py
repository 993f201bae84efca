"""
FastAPI Tasks Backend package.

The ASGI application lives in ``tasks_api.main:app``; it is not imported here
so that importing submodules (schemas, tokens, the client) does not read the
environment or configure logging.
"""

__version__ = "0.1.0"
