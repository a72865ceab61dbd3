"""
Application layer package.

Use cases orchestrating the exchange domain: one class per use
case, one async ``execute`` method, dependencies injected through
the constructor as domain ports.
"""
