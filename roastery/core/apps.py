from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'roastery.core'

    def ready(self):
        """Import signals when app is ready"""
        import roastery.core.cache_signals  # noqa: F401  # Report cache invalidation signals
