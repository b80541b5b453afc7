from django.apps import AppConfig


class BloodlinkConfig(AppConfig):
    name = 'bloodlink'

    def ready(self):
        from .firebase_config import initialize_firebase
        initialize_firebase()
