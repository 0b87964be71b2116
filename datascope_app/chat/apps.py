from django.apps import AppConfig


class ChatConfig(AppConfig):
    name = "datascope_app.chat"
    verbose_name = "Chat assistants"
