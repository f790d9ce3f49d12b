from django.urls import path

from .views import (
    ConsultationCancelView,
    ConsultationDetailView,
    ConsultationListView,
    ConsultationRequestView,
    ConsultationStatusView,
)

urlpatterns = [
    path('', ConsultationListView.as_view(), name='consultation-list'),
    path('request/', ConsultationRequestView.as_view(), name='consultation-request'),
    path('<int:pk>/', ConsultationDetailView.as_view(), name='consultation-detail'),
    path('<int:pk>/status/', ConsultationStatusView.as_view(), name='consultation-status'),
    path('<int:pk>/cancel/', ConsultationCancelView.as_view(), name='consultation-cancel'),
]
