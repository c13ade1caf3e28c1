from django.apps import AppConfig


class SchedulingApiConfig(AppConfig):
    name = "agendamento_api"
    verbose_name = "Agendamento Automático"

    def ready(self):
        from django.conf import settings

        # ─── DI container ───────────────────────────────────────────
        from provider_matching.adapters.config.composition_root import setup_di_container_from_settings

        setup_di_container_from_settings(settings)
