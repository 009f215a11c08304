"""Production settings for the chalet reservation service.

Secrets, hosts and the SMTP relay used for guest notifications come from
environment variables. Point DB_ENGINE at a server database (PostgreSQL)
so that `lock_rooms` takes real row locks.
"""

from .base import *  # noqa: F401,F403

DEBUG = False

ALLOWED_HOSTS = [h for h in os.environ.get('DJANGO_ALLOWED_HOSTS', '').split(',') if h]  # noqa: F405

DATABASES['default']['CONN_MAX_AGE'] = int(os.environ.get('DB_CONN_MAX_AGE', 60))  # noqa: F405

CSRF_COOKIE_SECURE = True
SESSION_COOKIE_SECURE = True

# Booking confirmations go out through this relay
EMAIL_BACKEND = 'django.core.mail.backends.smtp.EmailBackend'
EMAIL_HOST = os.environ.get('EMAIL_HOST', 'localhost')  # noqa: F405
EMAIL_PORT = int(os.environ.get('EMAIL_PORT', 25))  # noqa: F405
EMAIL_USE_TLS = os.environ.get('EMAIL_USE_TLS', 'false').lower() == 'true'  # noqa: F405
EMAIL_HOST_USER = os.environ.get('EMAIL_HOST_USER', '')  # noqa: F405
EMAIL_HOST_PASSWORD = os.environ.get('EMAIL_HOST_PASSWORD', '')  # noqa: F405
