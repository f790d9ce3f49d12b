from django.urls import path

from .views import (
    AcceptEntryView,
    CaseDetailView,
    CaseEntriesView,
    CaseListCreateView,
    CaseOfferCreateView,
    CaseRequestCreateView,
    CaseStatusView,
    InboxView,
    OutboxView,
    RejectEntryView,
)

urlpatterns = [
    path('cases/', CaseListCreateView.as_view(), name='case-list'),
    path('cases/<int:pk>/', CaseDetailView.as_view(), name='case-detail'),
    path('cases/<int:pk>/status/', CaseStatusView.as_view(), name='case-status'),
    path('cases/<int:pk>/requests/', CaseRequestCreateView.as_view(), name='case-request-create'),
    path('cases/<int:pk>/offers/', CaseOfferCreateView.as_view(), name='case-offer-create'),
    path('cases/<int:pk>/entries/', CaseEntriesView.as_view(), name='case-entries'),

    path('requests/inbox/', InboxView.as_view(), name='request-inbox'),
    path('requests/outbox/', OutboxView.as_view(), name='request-outbox'),
    path('requests/<uuid:request_id>/accept/', AcceptEntryView.as_view(), name='request-accept'),
    path('requests/<uuid:request_id>/reject/', RejectEntryView.as_view(), name='request-reject'),
]
