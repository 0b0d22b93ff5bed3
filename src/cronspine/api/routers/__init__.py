"""API routers. Each module exposes a ``router`` mounted under ``api_prefix``."""
