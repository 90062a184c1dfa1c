"""Django settings shared by every environment."""

from typing import Final

from server.settings.components import BASE_DIR, config

SECRET_KEY = config('DJANGO_SECRET_KEY', default='insecure-development-key')

DEBUG = config('DJANGO_DEBUG', cast=bool, default=False)

INSTALLED_APPS: Final = (
    'server.apps.files',
)

# Seconds a metadata query may wait on a locked database
FILES_METADATA_TIMEOUT = config('FILES_METADATA_TIMEOUT', cast=float, default=5)

DATABASES: Final = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': config(
            'DJANGO_DATABASE_NAME',
            default=str(BASE_DIR.joinpath('metadata.sqlite3')),
        ),
        'OPTIONS': {
            'timeout': FILES_METADATA_TIMEOUT,
        },
    },
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LANGUAGE_CODE = 'en-us'

USE_TZ = True
TIME_ZONE = config('DJANGO_TIME_ZONE', default='UTC')
