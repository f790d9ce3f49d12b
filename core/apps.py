import atexit

from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core"

    cache = None

    def ready(self):
        from .cache import build_cache_client

        self.cache = build_cache_client()
        self.cache.connect()
        atexit.register(self.cache.close)
