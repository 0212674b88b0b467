from django.apps import AppConfig


class AccountsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.accounts"
    label = "accounts"

    def ready(self) -> None:
        from modules.accounts import signals  # noqa: F401
