"""
Settings for the test run.

Deterministic secret, fast hashing, console-only logging, no outbound
geocoding and no throttling.
"""

import os

os.environ.setdefault('SECRET_KEY', 'rescuelink-test-secret-key')
os.environ.setdefault('DEBUG', 'False')

from .settings import *  # noqa: E402,F401,F403

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

ALLOWED_HOSTS = ['testserver', 'localhost']

SECURE_SSL_REDIRECT = False
SESSION_COOKIE_SECURE = False
CSRF_COOKIE_SECURE = False

PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

DISPATCH_DEPARTMENTS = ['Edhi Foundation', 'Chippa Ambulance']

GEOCODING_ENABLED = False

REST_FRAMEWORK = {
    **REST_FRAMEWORK,  # noqa: F405
    'DEFAULT_THROTTLE_CLASSES': [],
}

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {
        'console': {
            'level': 'WARNING',
            'class': 'logging.StreamHandler',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
}
