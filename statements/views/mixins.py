"""
View mixins: JsonApiView (error mapping), JSONBodyMixin, StatementMixin.
"""

import json
import logging

from django.http import Http404, JsonResponse
from django.shortcuts import get_object_or_404
from django.views.generic import View

from statements.exceptions import (
    InvalidStatusTransitionError, ItemNotFoundError, ListingNotFoundError,
    StatementError, StatementLockedError, StatementValidationError,
)
from statements.models import Statement
from statements.services import DatabaseDataSource, RuleResolver

logger = logging.getLogger(__name__)

ERROR_STATUS = (
    (StatementValidationError, 400),
    (ItemNotFoundError, 404),
    (ListingNotFoundError, 404),
    (StatementLockedError, 409),
    (InvalidStatusTransitionError, 409),
)


def error_response(exc):
    """Map an engine error to a JSON error response."""
    status = 400
    for error_class, code in ERROR_STATUS:
        if isinstance(exc, error_class):
            status = code
            break
    return JsonResponse({'success': False, 'error': type(exc).__name__, 'message': str(exc)}, status=status)


class JsonApiView(View):
    """
    Base view for the JSON API.

    Engine errors become 400/404/409 responses; anything unexpected is
    logged and returned as a 500.
    """

    def dispatch(self, request, *args, **kwargs):
        try:
            return super().dispatch(request, *args, **kwargs)
        except StatementError as exc:
            return error_response(exc)
        except Http404:
            raise
        except Exception as exc:
            logger.exception("Unexpected error in %s", self.__class__.__name__)
            return JsonResponse({'success': False, 'message': str(exc)}, status=500)


class JSONBodyMixin:
    """Parse the request body as a JSON object."""

    def get_payload(self):
        if not self.request.body:
            return {}
        try:
            payload = json.loads(self.request.body)
        except (TypeError, ValueError):
            raise StatementValidationError("Request body is not valid JSON")
        if not isinstance(payload, dict):
            raise StatementValidationError("Request body must be a JSON object")
        return payload


class StatementMixin:
    """
    Mixin to get the statement from URL kwargs and the engine collaborators.
    """

    def get_data_source(self):
        return DatabaseDataSource()

    def get_resolver(self):
        return RuleResolver(self.get_data_source().get_listing_config)

    def get_statement(self):
        return get_object_or_404(Statement, pk=self.kwargs.get('statement_id'))
