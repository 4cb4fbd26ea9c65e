"""Statement URL patterns: list, detail, export, generation and edits."""

from django.urls import path
from statements.views import (
    StatementListView,
    StatementDetailView,
    StatementExportView,
    CancelledReservationsView,
    StatementGenerateView,
    StatementEditView,
    StatementStatusView,
)

urlpatterns = [
    path('statements/', StatementListView.as_view(), name='statement_list'),
    path('statements/generate/', StatementGenerateView.as_view(), name='statement_generate'),
    path('statements/<int:statement_id>/', StatementDetailView.as_view(), name='statement_detail'),
    path('statements/<int:statement_id>/export/', StatementExportView.as_view(), name='statement_export'),
    path('statements/<int:statement_id>/edit/', StatementEditView.as_view(), name='statement_edit'),
    path('statements/<int:statement_id>/status/', StatementStatusView.as_view(), name='statement_status'),
    path('statements/<int:statement_id>/cancelled-reservations/',
         CancelledReservationsView.as_view(), name='statement_cancelled_reservations'),
]
