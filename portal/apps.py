from django.apps import AppConfig


class PortalConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "portal"

    def ready(self):
        from . import schema, signals  # noqa: F401

        for model in self.get_models():
            schema.register(model)
