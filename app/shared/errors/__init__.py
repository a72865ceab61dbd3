"""
Shared error handling package.

Translates exchange domain errors and trade rejection reasons
into HTTP status codes and a uniform JSON error body.
"""
