import os

SETTINGS_MODULES = {
    "prod": "config.production",
    "production": "config.production",
    "test": "config.testing",
    "testing": "config.testing",
    "dev": "config.development",
    "development": "config.development",
}


def get_settings_module() -> str:
    """Resolve the settings module from APP_ENV, then FLASK_ENV.

    Unknown names fall back to development.
    """
    env = (os.getenv("APP_ENV") or os.getenv("FLASK_ENV") or "development").strip().lower()
    return SETTINGS_MODULES.get(env, "config.development")
