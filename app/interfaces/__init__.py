"""
Interfaces layer package.

FastAPI routers and Pydantic request/response schemas. Routes
validate input shape, call one use case and serialize its result.
"""
