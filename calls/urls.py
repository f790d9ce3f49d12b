from django.urls import path

from .views import (
    ActiveCallsView,
    CallAnswerView,
    CallDetailView,
    CallEndView,
    CallHistoryView,
    CallInitiateView,
    CallRejectView,
    CallStatsView,
)

urlpatterns = [
    path('initiate/', CallInitiateView.as_view(), name='call-initiate'),
    path('history/', CallHistoryView.as_view(), name='call-history'),
    path('active/', ActiveCallsView.as_view(), name='call-active'),
    path('stats/', CallStatsView.as_view(), name='call-stats'),
    path('<uuid:call_id>/', CallDetailView.as_view(), name='call-detail'),
    path('<uuid:call_id>/answer/', CallAnswerView.as_view(), name='call-answer'),
    path('<uuid:call_id>/end/', CallEndView.as_view(), name='call-end'),
    path('<uuid:call_id>/reject/', CallRejectView.as_view(), name='call-reject'),
]
