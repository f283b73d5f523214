from __future__ import annotations

import importlib

from dotenv import load_dotenv

from gym_access.config import get_settings_module
from gym_access.config.settings import load_settings
from gym_access.database.bootstrap import DEMO_USERS, ensure_demo_users
from gym_access.database.connection import DatabaseConnection, DBConfig


def main() -> None:
    load_dotenv(override=False)
    settings = load_settings(importlib.import_module(get_settings_module()))
    ensure_demo_users(DatabaseConnection(DBConfig.from_mapping(settings.db_config)))

    print(f"OK: Seeded demo users -> {settings.describe_db()}")
    for name, email, password, role in DEMO_USERS:
        print(f"  {role:<8} {email} / {password}")


if __name__ == "__main__":
    main()
