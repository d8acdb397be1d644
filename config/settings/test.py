"""
Test settings: in-memory SQLite, eager Celery, locmem email.

TEST_DB_ENGINE, TEST_DB_NAME, TEST_DB_USER, TEST_DB_PASSWORD, TEST_DB_HOST
and TEST_DB_PORT switch the database, e.g. to PostgreSQL for the
row-locking tests in apps/bookings/tests/test_concurrency.py:

    TEST_DB_ENGINE=django.db.backends.postgresql TEST_DB_NAME=hotel \\
    TEST_DB_USER=hotel TEST_DB_PASSWORD=hotel TEST_DB_HOST=localhost pytest
"""

from .base import *  # noqa: F401,F403

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': os.environ.get('TEST_DB_ENGINE', 'django.db.backends.sqlite3'),
        'NAME': os.environ.get('TEST_DB_NAME', ':memory:'),
        'USER': os.environ.get('TEST_DB_USER', ''),
        'PASSWORD': os.environ.get('TEST_DB_PASSWORD', ''),
        'HOST': os.environ.get('TEST_DB_HOST', ''),
        'PORT': os.environ.get('TEST_DB_PORT', ''),
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

PAYMENT_WEBHOOK_SECRET = 'test-webhook-secret'
RATE_LIMIT_STORE = 'memory'
LEDGER_RETRY_BASE_DELAY = 0
STAFF_ALERT_EMAIL = 'ops@hotel.test'

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {"null": {"class": "logging.NullHandler"}},
    "root": {"handlers": ["null"], "level": "CRITICAL"},
}
