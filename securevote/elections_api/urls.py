from django.urls import path
from . import views

# This file maps URL endpoints to the View functions in views.py

urlpatterns = [
    # --- Voter Endpoints ---
    # e.g., POST /api/v1/vote/cast
    path('vote/cast', views.CastVoteView.as_view(), name='cast-vote'),

    # --- Public Endpoints ---
    # e.g., GET /api/v1/elections/3f2b6c9e-.../tally
    path('elections/<uuid:election_id>/tally', views.ElectionTallyView.as_view(), name='election-tally'),
    path('transactions/<str:tx_hash>', views.TransactionDetailView.as_view(), name='transaction-detail'),

    # --- Admin Endpoints ---
    path('admin/notifications/sweep', views.NotificationSweepView.as_view(), name='admin-notification-sweep'),
    path('admin/notifications/logs', views.NotificationLogListView.as_view(), name='admin-notification-logs'),
]
