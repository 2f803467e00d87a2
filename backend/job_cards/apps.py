from django.apps import AppConfig


class JobCardsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'backend.job_cards'
