"""
Shared module package.

Cross-cutting concerns used by the exchange context: error mapping,
security middleware, rate limiting and logging configuration.
"""
