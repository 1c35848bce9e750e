from django.apps import AppConfig


class TenancyConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "tenancy"
    verbose_name = "Tenancy"

    def ready(self):
        """Connect cache invalidation signals and register system checks."""
        import tenancy.signals  # noqa: F401
        import tenancy.checks  # noqa: F401
