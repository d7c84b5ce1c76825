"""Test settings - uses SQLite for fast local testing."""
from .base import *  # noqa: F401,F403

DEBUG = True
SECRET_KEY = "test-secret-key-not-for-production-use-0123456789abcdef"

# Use SQLite for tests (no PostgreSQL dependency; advisory locks are skipped)
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}
DATABASES["default"]["ATOMIC_REQUESTS"] = False

# Faster password hashing in tests
PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

# Disable Redis cache in tests
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

# Disable Celery in tests
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

# Disable API throttling in tests for deterministic runs
REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []  # noqa: F405
REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}  # noqa: F405

# Quieter logging during tests; records still propagate to pytest caplog
LOGGING["root"]["level"] = "WARNING"  # noqa: F405
for _name in ("salesboard", "targets"):
    LOGGING["loggers"][_name]["handlers"] = []  # noqa: F405
    LOGGING["loggers"][_name]["level"] = "WARNING"  # noqa: F405
    LOGGING["loggers"][_name]["propagate"] = True  # noqa: F405
