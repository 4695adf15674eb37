"""
# Database Package

Persistence layer built on **Motor**.

- **`manager`**: `DatabaseManager`, constructed per application and owned by the
  FastAPI lifespan.
- **`indexes`**: index definitions, including the uniqueness constraints used for
  idempotent checkout confirmation and single live event registration.
"""

from club_sphere.database.manager import DatabaseManager

__all__ = ["DatabaseManager"]
