from django.urls import path

from .views import (
    ActivityLogListView,
    NotificationDeleteView,
    NotificationListView,
    NotificationMarkAllReadView,
    NotificationMarkReadView,
)

urlpatterns = [
    path('', NotificationListView.as_view(), name='notifications'),
    path('read-all/', NotificationMarkAllReadView.as_view(), name='notification-read-all'),
    path('<int:pk>/read/', NotificationMarkReadView.as_view(), name='notification-read'),
    path('<int:pk>/', NotificationDeleteView.as_view(), name='notification-delete'),

    # Activity log (admins: everyone's)
    path('activity/', ActivityLogListView.as_view(), name='activity-logs'),
]
