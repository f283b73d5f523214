import os


def get_settings_module() -> str:
    # Read APP_ENV, defaulting to 'development'
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "gym_access.config.production"

    if env in {"test", "testing"}:
        return "gym_access.config.testing"

    return "gym_access.config.development"
