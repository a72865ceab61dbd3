"""
Domain layer package.

Entities, settlement rules, errors and port interfaces of the
exchange. No framework imports, no IO.
"""
