"""Django app configuration for files app."""

from django.apps import AppConfig


class FilesConfig(AppConfig):
    """Uploaded files: blobs on disk, records in the database."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'server.apps.files'
    label = 'files'
    verbose_name = 'File storage'
