"""
Statement API views: list, detail, export, generate, edit, status and
cancelled reservations.

Detail and export recompute totals against the current listing settings
before responding.
"""

import logging

import pandas as pd
from django.db.models import Q
from django.http import HttpResponse, JsonResponse

from statements.domain import CHECKOUT, to_date
from statements.exceptions import ItemNotFoundError, StatementValidationError
from statements.models import GenerationJob, Statement
from statements.services import (
    CancelledReservationService, StatementGenerationService, StatementMutator, StatementRecalculator,
)
from statements.services.generation_service import bulk_property_ids

from .mixins import JSONBodyMixin, JsonApiView, StatementMixin

logger = logging.getLogger(__name__)


def _require(payload, name):
    value = payload.get(name)
    if value is None or value == '':
        raise StatementValidationError(f"'{name}' is required")
    return value


# =============================================================================
# READ
# =============================================================================

class StatementListView(StatementMixin, JsonApiView):
    """
    GET /api/statements/

    Params: property_id, status, start_date, end_date, include_cancelled (1)
    """

    SNAPSHOT_FIELDS = (
        'reservations', 'items', 'listing_settings_snapshot',
        'overlapping_reservations', 'duplicate_warnings',
    )

    def get(self, request, *args, **kwargs):
        statements = Statement.objects.defer(*self.SNAPSHOT_FIELDS)

        status = request.GET.get('status')
        if status:
            statements = statements.filter(status=status)
        try:
            start = to_date(request.GET.get('start_date'))
            end = to_date(request.GET.get('end_date'))
        except ValueError as exc:
            raise StatementValidationError(str(exc))
        if start:
            statements = statements.filter(week_end_date__gte=start)
        if end:
            statements = statements.filter(week_start_date__lte=end)

        property_id = request.GET.get('property_id')
        if property_id:
            try:
                property_id = int(property_id)
            except ValueError:
                raise StatementValidationError(f"Invalid property_id: {property_id}")
            # Combined statements keep their listings in a JSON list
            statements = [
                s for s in statements.filter(Q(property_id=property_id) | Q(is_combined_statement=True))
                if property_id in s.statement_property_ids
            ]
        else:
            statements = list(statements)

        rows = [s.as_list_item() for s in statements]
        if request.GET.get('include_cancelled') == '1':
            service = CancelledReservationService(self.get_data_source())
            for row, statement in zip(rows, statements):
                row['cancelled_count'] = service.count_for_statement(statement)

        return JsonResponse({'success': True, 'count': len(rows), 'statements': rows})


class StatementDetailView(StatementMixin, JsonApiView):
    """GET /api/statements/<id>/ (recalculates totals first)."""

    def get(self, request, *args, **kwargs):
        statement = self.get_statement()
        rewritten = StatementRecalculator(self.get_resolver()).refresh(statement)

        data = statement.as_detail()
        data['totals_rewritten'] = rewritten
        return JsonResponse({'success': True, 'statement': data})


class StatementExportView(StatementMixin, JsonApiView):
    """GET /api/statements/<id>/export/ -> CSV of lines and totals."""

    def get(self, request, *args, **kwargs):
        statement = self.get_statement()
        StatementRecalculator(self.get_resolver()).refresh(statement)

        rows = []
        for reservation in statement.reservations or []:
            rows.append({
                'section': 'reservation',
                'id': reservation.get('id'),
                'date': reservation.get('check_out_date'),
                'description': (
                    f"{reservation.get('guest_name')} "
                    f"({reservation.get('check_in_date')} to {reservation.get('check_out_date')})"
                ),
                'category': reservation.get('source'),
                'amount': reservation.get('client_revenue') if reservation.get('has_detailed_finance')
                else reservation.get('gross_amount'),
            })
        for item in statement.get_items():
            if item.hidden:
                continue
            rows.append({
                'section': item.type,
                'id': item.id,
                'date': item.date.isoformat() if item.date else '',
                'description': item.description,
                'category': item.category,
                'amount': str(item.amount),
            })
        for label, field_name in (
            ('Total Revenue', 'total_revenue'),
            ('PM Commission', 'pm_commission'),
            ('Total Upsells', 'total_upsells'),
            ('Total Expenses', 'total_expenses'),
            ('Cleaning Fee Deducted', 'total_cleaning_fee'),
            ('Owner Payout', 'owner_payout'),
        ):
            rows.append({
                'section': 'total', 'id': field_name, 'date': '', 'description': label,
                'category': '', 'amount': str(getattr(statement, field_name)),
            })

        frame = pd.DataFrame(rows, columns=['section', 'id', 'date', 'description', 'category', 'amount'])
        response = HttpResponse(frame.to_csv(index=False), content_type='text/csv')
        filename = f"statement-{statement.pk}-{statement.week_start_date}-{statement.week_end_date}.csv"
        response['Content-Disposition'] = f'attachment; filename="{filename}"'
        return response


class CancelledReservationsView(StatementMixin, JsonApiView):
    """GET /api/statements/<id>/cancelled-reservations/"""

    def get(self, request, *args, **kwargs):
        statement = self.get_statement()
        cancelled = CancelledReservationService(self.get_data_source()).for_statement(statement)
        return JsonResponse({'success': True, 'count': len(cancelled), 'reservations': cancelled})


# =============================================================================
# WRITE
# =============================================================================

class StatementGenerateView(StatementMixin, JSONBodyMixin, JsonApiView):
    """
    POST /api/statements/generate/

    Body:
        {"property_id": 42, "start_date": ..., "end_date": ..., "calculation_type": "checkout"}
        {"property_ids": [42, 43], ...}                     combined statement
        {"bulk": true, "property_ids": [...] | "tag": "x"}  one per listing, tracked by a job
    """

    def post(self, request, *args, **kwargs):
        payload = self.get_payload()
        start = _require(payload, 'start_date')
        end = _require(payload, 'end_date')
        calculation_type = payload.get('calculation_type') or CHECKOUT
        service = StatementGenerationService(self.get_data_source())

        if payload.get('bulk'):
            property_ids = payload.get('property_ids') or bulk_property_ids(payload.get('tag'))
            service.validate_period(start, end, calculation_type)
            if not property_ids:
                raise StatementValidationError("No listings to generate statements for")
            job = GenerationJob.objects.create(params={
                'property_ids': property_ids, 'tag': payload.get('tag'),
                'start_date': start, 'end_date': end, 'calculation_type': calculation_type,
            })
            service.start_bulk_job(job, property_ids, start, end, calculation_type)
            return JsonResponse({'success': True, 'job_id': job.pk, 'job': job.as_dict()}, status=202)

        if payload.get('property_ids'):
            statement = service.generate_combined(payload['property_ids'], start, end, calculation_type)
        else:
            statement = service.generate(_require(payload, 'property_id'), start, end, calculation_type)
        return JsonResponse({'success': True, 'statement': statement.as_detail()}, status=201)


class StatementEditView(StatementMixin, JSONBodyMixin, JsonApiView):
    """
    POST /api/statements/<id>/edit/

    Body: {"operation": "<name>", ...arguments}
    """

    ITEM_OPERATIONS = ('hide_item', 'show_item', 'remove_expense')

    def post(self, request, *args, **kwargs):
        statement = self.get_statement()
        payload = self.get_payload()
        operation = _require(payload, 'operation')
        mutator = StatementMutator(statement, self.get_resolver())

        if operation in self.ITEM_OPERATIONS:
            getattr(mutator, operation)(_require(payload, 'item_id'))
        elif operation == 'edit_expense':
            changes = payload.get('changes') or {
                k: payload[k] for k in ('date', 'description', 'category', 'amount') if k in payload
            }
            mutator.edit_expense(_require(payload, 'item_id'), **changes)
        elif operation == 'add_reservation':
            mutator.add_reservation(payload.get('reservation') or self._fetch_reservation(
                statement, _require(payload, 'reservation_id')
            ))
        elif operation == 'remove_reservation':
            mutator.remove_reservation(_require(payload, 'reservation_id'))
        elif operation == 'add_custom_reservation':
            mutator.add_custom_reservation(
                guest_name=payload.get('guest_name'),
                check_in_date=payload.get('check_in_date'),
                check_out_date=payload.get('check_out_date'),
                base_rate=payload.get('base_rate'),
                gross_payout=payload.get('gross_payout'),
                luxury_lodging_fee=payload.get('luxury_lodging_fee'),
                description=payload.get('description', ''),
                property_id=payload.get('property_id'),
            )
        elif operation == 'update_cleaning_fee':
            mutator.update_cleaning_fee(_require(payload, 'reservation_id'), payload.get('cleaning_fee'))
        else:
            raise StatementValidationError(f"Unknown operation: {operation}")

        return JsonResponse({'success': True, 'statement': statement.as_detail()})

    def _fetch_reservation(self, statement, reservation_id):
        """Look a reservation up in the data source for the statement's period."""
        source = self.get_data_source()
        for property_id in statement.statement_property_ids:
            for reservation in source.get_reservations(
                statement.week_start_date, statement.week_end_date, property_id, statement.calculation_type
            ):
                if reservation.id == str(reservation_id):
                    return reservation
        raise ItemNotFoundError(f"Reservation {reservation_id} not found for this period")


class StatementStatusView(StatementMixin, JSONBodyMixin, JsonApiView):
    """POST /api/statements/<id>/status/ with {"status": "final" | "draft" | "sent"}"""

    def post(self, request, *args, **kwargs):
        statement = self.get_statement()
        target = _require(self.get_payload(), 'status')
        StatementMutator(statement, self.get_resolver()).change_status(target)
        return JsonResponse({'success': True, 'statement': statement.as_list_item()})
