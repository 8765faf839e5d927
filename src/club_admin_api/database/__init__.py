"""
# Database Package

The `club_admin_api.database` package provides the **persistence layer**, built on Motor.

- **`manager`**: the `DatabaseManager` singleton (`db_manager`) handling connection lifecycle,
  transaction detection and collection access.
- **`indexes`**: declarative index definitions for the principal, event and log collections.

```python
from club_admin_api.database import db_manager

await db_manager.connect()
clubs = db_manager.get_collection("clubs")
club = await clubs.find_one({"email": "robotique@esprit.tn"})
```

## Module Attributes

Attributes:
    db_manager (DatabaseManager): The global singleton instance for database access.
    DatabaseManager (class): The manager class (exported for type hinting).
"""

from club_admin_api.database.manager import DatabaseManager, db_manager

__all__ = ["DatabaseManager", "db_manager"]
