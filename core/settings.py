"""
Django settings for the quiz admin dashboard services.

Values come from environment variables so the same settings module serves
local development, CI and deployment.
"""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'dev-only-insecure-key')
DEBUG = os.environ.get('DJANGO_DEBUG', 'True') == 'True'
ALLOWED_HOSTS = os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',')

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.auth',
    'rest_framework',
    'questions_app',
]

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'db.sqlite3',
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'
USE_TZ = True

# Backend the dashboard talks to
QUESTIONS_API_BASE_URL = os.environ.get('QUESTIONS_API_BASE_URL', 'http://localhost:3000/api/admin')
QUESTIONS_API_TIMEOUT = float(os.environ.get('QUESTIONS_API_TIMEOUT', '5'))  # seconds, per request
QUESTIONS_API_ACCESS_TOKEN = os.environ.get('QUESTIONS_API_ACCESS_TOKEN')  # used by management commands

# JWT cookie issued by the backend's login endpoint
JWT_ACCESS_COOKIE_NAME = 'access_token'

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {'format': '{asctime} {levelname} {name}: {message}', 'style': '{'},
    },
    'handlers': {
        'console': {'class': 'logging.StreamHandler', 'formatter': 'simple'},
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'questions_app': {
            'handlers': ['console'],
            'level': os.environ.get('DJANGO_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}
