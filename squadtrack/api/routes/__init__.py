"""
HTTP routes, one module per resource.

Every router declares its own prefix and is mounted under ``/api/v1`` in
``squadtrack.main``.
"""
