"""
Django settings for the Cidade Conectada project.

Everything that varies between deployments is read from the environment.
Tenancy knobs are grouped under the ``TENANCY`` dict and consumed through
``tenancy.conf.get_config()``.
"""

import os
from pathlib import Path


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_int(name, default):
    try:
        return int(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'insecure-dev-key-change-me')
DEBUG = _env_bool('DJANGO_DEBUG', False)
ALLOWED_HOSTS = [h for h in os.environ.get('DJANGO_ALLOWED_HOSTS', '*').split(',') if h]

# =============================================================================
# APPLICATIONS
# =============================================================================

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    'rest_framework',
    'django_filters',

    'tenancy',
    'reports',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',

    # Tenant resolution must run after authentication (visibility by role)
    'tenancy.middleware.TenantContextMiddleware',
    'tenancy.middleware.AdminTenantSwitcherMiddleware',
]

ROOT_URLCONF = 'cidade.urls'
WSGI_APPLICATION = 'cidade.wsgi.application'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

# =============================================================================
# DATABASE
# =============================================================================

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': os.environ.get('DB_NAME', 'cidade'),
        'USER': os.environ.get('DB_USER', 'postgres'),
        'PASSWORD': os.environ.get('DB_PASSWORD', ''),
        'HOST': os.environ.get('DB_HOST', 'localhost'),
        'PORT': os.environ.get('DB_PORT', '5432'),
        'CONN_MAX_AGE': _env_int('DB_CONN_MAX_AGE', 60),
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# =============================================================================
# CACHE
# =============================================================================

CACHES = {
    'default': {
        'BACKEND': 'django_redis.cache.RedisCache',
        'LOCATION': os.environ.get('REDIS_URL', 'redis://localhost:6379/1'),
        'OPTIONS': {
            'CLIENT_CLASS': 'django_redis.client.DefaultClient',
            # A failing cache read must fall through to a direct lookup
            'IGNORE_EXCEPTIONS': True,
        },
        'KEY_PREFIX': 'cidade',
    }
}
DJANGO_REDIS_LOG_IGNORED_EXCEPTIONS = True

# =============================================================================
# INTERNATIONALIZATION
# =============================================================================

LANGUAGE_CODE = 'pt-br'
TIME_ZONE = 'America/Sao_Paulo'
USE_I18N = True
USE_TZ = True

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# =============================================================================
# REST FRAMEWORK
# =============================================================================

REST_FRAMEWORK = {
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework.authentication.SessionAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.AllowAny',
    ],
}

# =============================================================================
# CELERY
# =============================================================================

CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = os.environ.get('CELERY_RESULT_BACKEND', 'redis://localhost:6379/0')
CELERY_TASK_ALWAYS_EAGER = False

# =============================================================================
# TENANCY
# =============================================================================

_APP_HOST = os.environ.get('TENANCY_APP_HOST', 'etijucas.com.br')

TENANCY = {
    'TRUSTED_HOSTS': [h for h in [
        _APP_HOST,
        f'www.{_APP_HOST}',
        '*.cidadeconectada.app',
        'localhost',
        '127.0.0.1',
        os.environ.get('TENANCY_EXTRA_HOST'),
    ] if h],
    'ALLOW_HEADER_OVERRIDE': _env_bool('TENANCY_ALLOW_HEADER', True),
    'HEADER_NAME': os.environ.get('TENANCY_HEADER_NAME', 'X-City'),
    'DEFAULT_CITY_SLUG': os.environ.get('TENANCY_DEFAULT_CITY', 'tijucas-sc'),
    'STRICT_MODE': _env_bool('TENANCY_STRICT', False),
    'DOMAIN_MAP_TTL': 3600,
    'CITY_CONFIG_TTL': 900,
    'MODULE_STATUS_TTL': 900,
    'MISMATCH_ALERTS_ENABLED': _env_bool('TENANCY_MISMATCH_ALERTS_ENABLED', True),
    'MISMATCH_WINDOW_SECONDS': _env_int('TENANCY_MISMATCH_WINDOW', 300),
    'MISMATCH_ALERT_THRESHOLD': _env_int('TENANCY_MISMATCH_THRESHOLD', 5),
    'MODULE_ALIASES': {},
    'AUDIT_RECORDER': 'tenancy.audit.DatabaseAuditRecorder',
    'EXEMPT_PATHS': ['/admin/', '/static/', '/media/', '/health/', '/api/v1/cities/'],
}

# =============================================================================
# LOGGING
# =============================================================================

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'filters': {
        'tenant_context': {
            '()': 'tenancy.logging.TenantContextFilter',
        },
    },
    'formatters': {
        'tenant': {
            '()': 'tenancy.logging.TenantFormatter',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'filters': ['tenant_context'],
            'formatter': 'tenant',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': os.environ.get('LOG_LEVEL', 'INFO'),
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'WARNING',
            'propagate': False,
        },
        'tenancy': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
    },
}
