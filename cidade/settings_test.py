"""
Django Test Settings for the Cidade Conectada project.

Usage:
    pytest --ds=cidade.settings_test
"""

from .settings import *  # noqa: F401, F403

# =============================================================================
# TEST ENVIRONMENT CONFIGURATION
# =============================================================================

DEBUG = False
TESTING = True

PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

ALLOWED_HOSTS = ['*']

# =============================================================================
# DATABASE CONFIGURATION
# =============================================================================

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

# =============================================================================
# CACHING CONFIGURATION
# =============================================================================

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'cidade-tests',
    },
}

# =============================================================================
# CELERY CONFIGURATION
# =============================================================================

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

# =============================================================================
# TENANCY
# =============================================================================

TENANCY = {
    **TENANCY,  # noqa: F405
    'TRUSTED_HOSTS': ['localhost', 'testserver', '*.cidadeconectada.app', 'etijucas.com.br'],
    'DEFAULT_CITY_SLUG': 'tijucas-sc',
    'STRICT_MODE': False,
    'ALLOW_HEADER_OVERRIDE': True,
}

# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

# Records still reach pytest's caplog handler through propagation.
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {
        'null': {
            'class': 'logging.NullHandler',
        },
    },
    'root': {
        'handlers': ['null'],
        'level': 'INFO',
    },
}
