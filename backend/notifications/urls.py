from django.urls import path
from .views import send_notification, device_tokens

urlpatterns = [
    path('notifications/send/', send_notification, name='notification-send'),
    path('notifications/tokens/', device_tokens, name='notification-tokens'),
]
