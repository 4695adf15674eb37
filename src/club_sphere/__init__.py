"""Club Sphere API: club discovery, paid memberships and event registration."""

__version__ = "1.0.0"
