"""
Views package.

Re-exports all views so URL imports stay short:
    from statements.views import StatementDetailView, etc.
"""

# Mixins
from .mixins import (
    JsonApiView,
    JSONBodyMixin,
    StatementMixin,
    error_response,
)

# Statement views
from .statements import (
    StatementListView,
    StatementDetailView,
    StatementExportView,
    CancelledReservationsView,
    StatementGenerateView,
    StatementEditView,
    StatementStatusView,
)

# Job views
from .jobs import GenerationJobView

__all__ = [
    'JsonApiView', 'JSONBodyMixin', 'StatementMixin', 'error_response',
    'StatementListView', 'StatementDetailView', 'StatementExportView',
    'CancelledReservationsView', 'StatementGenerateView', 'StatementEditView',
    'StatementStatusView', 'GenerationJobView',
]
