"""Test settings.

In-memory SQLite, fast password hashing and the locmem mail backend so
notification tests can inspect `django.core.mail.outbox`.
"""

from .base import *  # noqa: F401,F403

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

# Let pytest's caplog see application records
LOGGING["loggers"]["apps"]["propagate"] = True  # noqa: F405
LOGGING["loggers"]["shared"]["propagate"] = True  # noqa: F405
