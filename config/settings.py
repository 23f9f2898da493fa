"""
Django settings for the santa-tour project.

Generated for Django 5.0, using Python 3.12+.
For more information on this file, see
https://docs.djangoproject.com/en/5.0/topics/settings/

For the full list of settings and their values, see
https://docs.djangoproject.com/en/5.0/ref/settings/
"""

import logging
import time
from pathlib import Path

from decouple import config

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR: Path = Path(__file__).resolve().parent.parent


# Quick-start development settings - unsuitable for production
# See https://docs.djangoproject.com/en/5.0/howto/deployment/checklist/

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY: str = str(config('SECRET_KEY', default='django-insecure-change-me-in-production'))

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG: bool = config('DEBUG', default=True, cast=bool)


def _parse_csv(value: str) -> list[str]:
    """Parse a comma-separated list from environment."""
    return [s.strip() for s in value.split(',') if s.strip()]


ALLOWED_HOSTS: list[str] = _parse_csv(str(config('ALLOWED_HOSTS', default='*')))


# Application definition

INSTALLED_APPS: list[str] = [
    'daphne',
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'channels',
    'santa_tour.apps.SantaTourConfig',
]

MIDDLEWARE: list[str] = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF: str = 'config.urls'

TEMPLATES: list[dict] = [
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

WSGI_APPLICATION: str = 'config.wsgi.application'
ASGI_APPLICATION: str = 'config.asgi.application'


# Database
# https://docs.djangoproject.com/en/5.0/ref/settings/#databases

DATABASES: dict = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': config('DATABASE_PATH', default=str(BASE_DIR / 'db.sqlite3')),
    }
}


# Password validation
# https://docs.djangoproject.com/en/5.0/ref/settings/#auth-password-validators

AUTH_PASSWORD_VALIDATORS: list[dict] = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',
    },
]


# Internationalization
# https://docs.djangoproject.com/en/5.0/topics/i18n/

LANGUAGE_CODE: str = 'en-gb'

TIME_ZONE: str = 'Europe/London'

USE_I18N: bool = True

USE_TZ: bool = True


# Static files (CSS, JavaScript, Images)
# https://docs.djangoproject.com/en/5.0/howto/static-files/

STATIC_URL: str = 'static/'

# Default primary key field type
# https://docs.djangoproject.com/en/5.0/ref/settings/#default-auto-field

DEFAULT_AUTO_FIELD: str = 'django.db.models.BigAutoField'


# REST Framework settings
REST_FRAMEWORK: dict = {
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'DEFAULT_PARSER_CLASSES': [
        'rest_framework.parsers.JSONParser',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.AllowAny',
    ],
}


# Santa tour tracking
# Dotted path of the LocationStore backend holding the sleigh's current fix.
SANTA_TOUR_LOCATION_STORE: str = str(config(
    'SANTA_TOUR_LOCATION_STORE',
    default='santa_tour.store.DatabaseLocationStore',
))

# Drop fixes whose timestamp is older than the stored one. Off by default:
# plain last-writer-wins.
SANTA_TOUR_REJECT_STALE_FIXES: bool = config('SANTA_TOUR_REJECT_STALE_FIXES', default=False, cast=bool)

# Shared secret the driver's tracker must send. Only enforced when
# SANTA_TOUR_PRODUCTION is on.
SANTA_TRACK_SECRET: str = str(config('SANTA_TRACK_SECRET', default=''))
SANTA_TOUR_PRODUCTION: bool = config('SANTA_TOUR_PRODUCTION', default=not DEBUG, cast=bool)


# Logging configuration

# Add custom TRACE level (below DEBUG)
TRACE_LEVEL = 5
logging.addLevelName(TRACE_LEVEL, 'TRACE')


def trace(self, message, *args, **kwargs):
    if self.isEnabledFor(TRACE_LEVEL):
        self._log(TRACE_LEVEL, message, args, **kwargs)


logging.Logger.trace = trace  # type: ignore[attr-defined]


# Access lines for requests every viewer repeats every few seconds
NOISY_REQUEST_MARKERS: tuple[str, ...] = (
    '/health/',
    'GET /api/santa-tour/location',
)


class PollingRequestFilter(logging.Filter):
    """Demote health checks and location polls to TRACE level."""

    def filter(self, record):
        message = str(getattr(record, 'msg', ''))
        if record.args:
            try:
                message = record.getMessage()
            except (TypeError, ValueError):
                pass
        if any(marker in message for marker in NOISY_REQUEST_MARKERS):
            record.levelno = TRACE_LEVEL
            record.levelname = 'TRACE'
            return logging.getLogger(record.name).isEnabledFor(TRACE_LEVEL)
        return True


# Custom formatter that uses local time instead of UTC
class LocalTimeFormatter(logging.Formatter):
    def formatTime(self, record, datefmt=None):
        """Override formatTime to use local time instead of UTC."""
        ct = self.converter(record.created)
        if datefmt:
            s = time.strftime(datefmt, ct)
        else:
            s = time.strftime("%Y-%m-%d %H:%M:%S", ct)
            s = "%s,%03d" % (s, record.msecs)
        return s

    converter = time.localtime  # Use local time instead of gmtime


LOG_LEVEL: str = str(config('LOG_LEVEL', default='INFO'))

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'filters': {
        'polling_request_filter': {
            '()': 'config.settings.PollingRequestFilter',
        },
    },
    'formatters': {
        'verbose': {
            '()': 'config.settings.LocalTimeFormatter',
            'format': '%(asctime)s.%(msecs)03d %(levelname)-7s %(module)s %(message)s',
            'datefmt': '%Y%m%d-%H:%M:%S',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
            'filters': ['polling_request_filter'],
        },
    },
    'root': {
        'handlers': ['console'],
        'level': LOG_LEVEL,
    },
    'loggers': {
        'santa_tour': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
        'django.server': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
    },
}

# The driver's tracker posts from a browser on another origin
CSRF_TRUSTED_ORIGINS: list[str] = _parse_csv(
    str(config('CSRF_TRUSTED_ORIGINS', default=''))
)

# Channels configuration
CHANNEL_LAYERS: dict = {
    'default': {
        'BACKEND': 'channels.layers.InMemoryChannelLayer',
    }
}
