from __future__ import annotations

import importlib

from dotenv import load_dotenv

from gym_access.config import get_settings_module
from gym_access.config.settings import load_settings
from gym_access.database.bootstrap import apply_schema, list_tables
from gym_access.database.connection import DatabaseConnection, DBConfig


def main() -> None:
    load_dotenv(override=False)
    settings = load_settings(importlib.import_module(get_settings_module()))
    conn = DatabaseConnection(DBConfig.from_mapping(settings.db_config))

    apply_schema(conn)
    tables = list_tables(conn)
    print(f"OK: Applied schema.sql -> {settings.describe_db()} (tables={len(tables)})")


if __name__ == "__main__":
    main()
