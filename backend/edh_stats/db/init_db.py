"""
Database initialization script.
"""
from edh_stats.core.logging import configure_logging
from edh_stats.db.session import Database, init_db

# Import all models and views so SQLAlchemy can register them
from edh_stats.models import User, Commander, Game  # noqa: F401
from edh_stats.db import views  # noqa: F401

if __name__ == "__main__":
    configure_logging()
    print("Initializing database...")
    database = Database.from_settings().initialize()
    try:
        init_db(database)
    finally:
        database.close()
    print("Database initialized successfully!")
