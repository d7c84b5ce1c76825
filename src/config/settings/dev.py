"""Development settings."""
from .base import *  # noqa: F401,F403

DEBUG = True
SECRET_KEY = env("SECRET_KEY", default="django-insecure-dev-only")  # noqa: F405

# Debug toolbar
try:
    import debug_toolbar  # noqa: F401
    INSTALLED_APPS += ["debug_toolbar"]  # noqa: F405
    MIDDLEWARE.insert(0, "debug_toolbar.middleware.DebugToolbarMiddleware")  # noqa: F405
    INTERNAL_IPS = ["127.0.0.1"]
except ImportError:
    pass

# CORS
CORS_ALLOW_ALL_ORIGINS = True

# Logging
LOGGING["root"]["level"] = "DEBUG"  # noqa: F405
