from django.apps import AppConfig


class ProjectorsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'backend.projectors'
