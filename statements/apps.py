from django.apps import AppConfig


class StatementsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'statements'
    verbose_name = 'Owner Statements'

    def ready(self):
        """Import signals when app is ready."""
        import statements.signals  # noqa
