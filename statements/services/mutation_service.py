"""
Statement Mutator.

Edit operations on a saved statement. Every operation that touches
financially relevant data re-runs the rule resolver and the totals
aggregator over the edited reservations/items; totals are never patched
by delta arithmetic.

Status rules:
- draft: every operation
- final: hide_item / show_item only
- sent: nothing

Status workflow: draft -> final -> sent, with reopen (final -> draft).
"""

import logging
import uuid
from decimal import InvalidOperation

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from statements.domain import (
    EXPENSE, HIDDEN_MANUAL, REVENUE, UPSELL, ZERO,
    Reservation, to_date, to_decimal, to_optional_decimal,
)
from statements.exceptions import (
    DuplicateReservationError, InvalidStatusTransitionError, ItemNotFoundError,
    StatementLockedError, StatementValidationError,
)
from statements.services.assembly_service import StatementAssembler, build_revenue_item, sync_cleaning_items
from statements.services.calculation_service import cleaning_fee_deduction

logger = logging.getLogger(__name__)

FINAL_ALLOWED_OPERATIONS = frozenset({'hide_item', 'show_item'})

STATUS_TRANSITIONS = {
    'finalize': ('draft', 'final'),
    'reopen': ('final', 'draft'),
    'mark_sent': ('final', 'sent'),
}

EDITABLE_EXPENSE_FIELDS = ('date', 'description', 'category', 'amount')


class StatementMutator:
    """
    Usage:
        mutator = StatementMutator(statement, RuleResolver(source.get_listing_config))
        mutator.hide_item('expense:991')
        mutator.add_custom_reservation(
            guest_name='Walk-in',
            check_in_date=date(2025, 6, 3),
            check_out_date=date(2025, 6, 6),
            base_rate=Decimal('450.00'),
            gross_payout=Decimal('500.00'),
        )
        statement.owner_payout  # already recomputed and saved
    """

    def __init__(self, statement, resolver, assembler=None):
        self.statement = statement
        self.resolver = resolver
        self.assembler = assembler or StatementAssembler()

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _ensure_editable(self, operation):
        status = self.statement.status
        if status == 'draft':
            return
        if status == 'final' and operation in FINAL_ALLOWED_OPERATIONS:
            return
        raise StatementLockedError(status, operation)

    def _resolve_rules(self):
        return self.resolver.resolve_many(
            self.statement.statement_property_ids, self.statement.week_end_date
        )

    def _labels(self, rules_by_property):
        return self.assembler.labels_for(rules_by_property, self.statement.statement_property_ids)

    @staticmethod
    def _find_item(items, item_id):
        for item in items:
            if item.id == item_id:
                return item
        raise ItemNotFoundError(f"Item {item_id} not found")

    @staticmethod
    def _find_reservation(reservations, reservation_id):
        for reservation in reservations:
            if reservation.id == str(reservation_id):
                return reservation
        raise ItemNotFoundError(f"Reservation {reservation_id} not found")

    def _commit(self, reservations, items, operation, rules_by_property=None):
        """
        Recompute totals and warnings, then save in one transaction.

        The statement is left as it was when the save is rejected.
        """
        statement = self.statement
        if rules_by_property is None:
            rules_by_property = self._resolve_rules()

        try:
            evaluation = self.assembler.evaluate(
                reservations, items, rules_by_property,
                statement.statement_property_ids, statement.week_end_date, statement.calculation_type,
            )
        except InvalidOperation:
            raise StatementValidationError(f"{operation} produced invalid amounts")

        committed_fields = ['reservations', 'items', 'cleaning_mismatch_warning']
        committed_fields.extend(evaluation.totals.as_fields())
        previous = {name: getattr(statement, name) for name in committed_fields}

        statement.set_reservations(reservations)
        statement.set_items(items)
        statement.apply_totals(evaluation.totals)
        statement.cleaning_mismatch_warning = evaluation.cleaning_mismatch_warning

        try:
            with transaction.atomic():
                statement.save()
        except ValidationError as exc:
            for name, value in previous.items():
                setattr(statement, name, value)
            raise StatementValidationError(f"{operation} rejected: {'; '.join(exc.messages)}")

        logger.info(
            "Statement %s: %s (owner payout %s)", statement.pk, operation, statement.owner_payout
        )
        return statement

    # =========================================================================
    # LINE ITEMS
    # =========================================================================

    def hide_item(self, item_id, reason=HIDDEN_MANUAL):
        self._ensure_editable('hide_item')
        items = self.statement.get_items()
        item = self._find_item(items, item_id)
        if item.type == REVENUE:
            raise StatementValidationError("Revenue lines cannot be hidden; remove the reservation instead")
        item.hidden = True
        item.hidden_reason = reason
        return self._commit(self.statement.get_reservations(), items, 'hide_item')

    def show_item(self, item_id):
        self._ensure_editable('show_item')
        items = self.statement.get_items()
        item = self._find_item(items, item_id)
        item.hidden = False
        item.hidden_reason = None
        return self._commit(self.statement.get_reservations(), items, 'show_item')

    def remove_expense(self, item_id):
        """Remove an expense/upsell from the totals. The line is hidden, never deleted."""
        self._ensure_editable('remove_expense')
        items = self.statement.get_items()
        item = self._find_item(items, item_id)
        if item.type not in (EXPENSE, UPSELL):
            raise StatementValidationError(f"Item {item_id} is not an expense or upsell")
        item.hidden = True
        item.hidden_reason = HIDDEN_MANUAL
        return self._commit(self.statement.get_reservations(), items, 'remove_expense')

    def edit_expense(self, item_id, **changes):
        """
        Edit an expense or upsell line.

        Args:
            item_id: line item id
            **changes: any of date, description, category, amount
        """
        self._ensure_editable('edit_expense')
        unknown = set(changes) - set(EDITABLE_EXPENSE_FIELDS)
        if unknown:
            raise StatementValidationError(f"Cannot edit field(s): {', '.join(sorted(unknown))}")

        items = self.statement.get_items()
        item = self._find_item(items, item_id)
        if item.type not in (EXPENSE, UPSELL):
            raise StatementValidationError(f"Item {item_id} is not an expense or upsell")
        if item.auto_generated:
            raise StatementValidationError("Auto-generated cleaning lines follow the reservation's cleaning fee")

        try:
            if 'date' in changes:
                item.date = to_date(changes['date'])
            if 'amount' in changes:
                item.amount = abs(to_decimal(changes['amount']))
        except ValueError as exc:
            raise StatementValidationError(str(exc))
        if 'description' in changes:
            item.description = (changes['description'] or '').strip()
        if 'category' in changes:
            item.category = (changes['category'] or '').strip()

        return self._commit(self.statement.get_reservations(), items, 'edit_expense')

    # =========================================================================
    # RESERVATIONS
    # =========================================================================

    def add_reservation(self, reservation):
        """
        Put a fetched reservation on the statement with its revenue line
        (and auto-cleaning line for pass-through listings).
        """
        self._ensure_editable('add_reservation')
        if not isinstance(reservation, Reservation):
            try:
                reservation = Reservation.from_dict(reservation)
            except (TypeError, ValueError) as exc:
                raise StatementValidationError(f"Invalid reservation: {exc}")

        property_ids = self.statement.statement_property_ids
        if reservation.property_id is None and len(property_ids) == 1:
            reservation.property_id = property_ids[0]
        if reservation.property_id not in property_ids:
            raise StatementValidationError(
                f"Reservation {reservation.id} does not belong to this statement's properties"
            )
        if not reservation.is_in_scope:
            raise StatementValidationError(
                f"Reservation {reservation.id} has status '{reservation.status}' and cannot be added"
            )

        reservations = self.statement.get_reservations()
        if any(r.id == reservation.id for r in reservations):
            raise DuplicateReservationError(f"Reservation {reservation.id} is already on this statement")

        rules_by_property = self._resolve_rules()
        labels = self._labels(rules_by_property)
        items = self.statement.get_items()

        reservations.append(reservation)
        reservations.sort(key=lambda r: (r.check_in_date, r.id))
        items.append(build_revenue_item(reservation, labels))
        sync_cleaning_items(
            items, [reservation], rules_by_property,
            self.statement.week_end_date, self.statement.calculation_type, labels,
        )
        return self._commit(reservations, items, 'add_reservation', rules_by_property)

    def remove_reservation(self, reservation_id):
        """Take a reservation off, with its revenue and auto-cleaning lines."""
        self._ensure_editable('remove_reservation')
        reservations = self.statement.get_reservations()
        reservation = self._find_reservation(reservations, reservation_id)

        reservations = [r for r in reservations if r.id != reservation.id]
        items = [
            item for item in self.statement.get_items()
            if item.reservation_id != reservation.id
        ]
        return self._commit(reservations, items, 'remove_reservation')

    def add_custom_reservation(self, guest_name=None, check_in_date=None, check_out_date=None,
                               base_rate=None, gross_payout=None, luxury_lodging_fee=None,
                               description='', property_id=None):
        """
        Insert a manually entered booking.

        The entered gross payout is used verbatim in the totals; an entered
        luxury lodging fee is shown as the commission.

        Raises:
            StatementValidationError: missing/invalid fields
            DuplicateReservationError: same guest, dates and gross payout
        """
        self._ensure_editable('add_custom_reservation')

        missing = [
            name for name, value in (
                ('guest_name', (guest_name or '').strip()),
                ('check_in_date', check_in_date),
                ('check_out_date', check_out_date),
                ('base_rate', base_rate),
                ('gross_payout', gross_payout),
            )
            if value is None or value == ''
        ]
        if missing:
            raise StatementValidationError(f"Missing required field(s): {', '.join(missing)}")

        try:
            check_in = to_date(check_in_date)
            check_out = to_date(check_out_date)
            base_rate = to_decimal(base_rate)
            gross_payout = to_decimal(gross_payout)
            luxury_lodging_fee = to_optional_decimal(luxury_lodging_fee)
        except ValueError as exc:
            raise StatementValidationError(str(exc))

        if check_in > check_out:
            raise StatementValidationError("Check-in date must be on or before check-out date")

        property_ids = self.statement.statement_property_ids
        if property_id is None:
            if len(property_ids) != 1:
                raise StatementValidationError("property_id is required on combined statements")
            property_id = property_ids[0]
        try:
            property_id = int(property_id)
        except (TypeError, ValueError):
            raise StatementValidationError(f"Invalid property_id: {property_id!r}")
        if property_id not in property_ids:
            raise StatementValidationError(f"Property {property_id} is not on this statement")

        guest_name = guest_name.strip()
        reservations = self.statement.get_reservations()
        for existing in reservations:
            if (existing.guest_name.strip().lower() == guest_name.lower()
                    and existing.check_in_date == check_in
                    and existing.check_out_date == check_out
                    and existing.gross_amount == gross_payout):
                raise DuplicateReservationError(
                    f"A reservation for {guest_name} ({check_in} to {check_out}, {gross_payout}) already exists"
                )

        reservation = Reservation(
            id=f"custom-{uuid.uuid4().hex[:12]}",
            property_id=property_id,
            guest_name=guest_name,
            check_in_date=check_in,
            check_out_date=check_out,
            nights=(check_out - check_in).days,
            source='custom',
            status='confirmed',
            gross_amount=gross_payout,
            has_detailed_finance=True,
            base_rate=base_rate,
            client_revenue=base_rate,
            is_custom=True,
            luxury_lodging_fee=luxury_lodging_fee,
            description=(description or '').strip(),
        )

        rules_by_property = self._resolve_rules()
        items = self.statement.get_items()
        reservations.append(reservation)
        reservations.sort(key=lambda r: (r.check_in_date, r.id))
        items.append(build_revenue_item(reservation, self._labels(rules_by_property)))
        return self._commit(reservations, items, 'add_custom_reservation', rules_by_property)

    def update_cleaning_fee(self, reservation_id, cleaning_fee):
        """
        Store a reservation-level guest-paid cleaning fee.

        The auto-generated cleaning line follows the new deduction; it is
        dropped when the deduction becomes zero.
        """
        self._ensure_editable('update_cleaning_fee')
        try:
            cleaning_fee = to_optional_decimal(cleaning_fee)
        except ValueError as exc:
            raise StatementValidationError(str(exc))
        if cleaning_fee is not None and cleaning_fee < ZERO:
            raise StatementValidationError("Cleaning fee cannot be negative")

        reservations = self.statement.get_reservations()
        reservation = self._find_reservation(reservations, reservation_id)
        reservation.cleaning_fee = cleaning_fee

        rules_by_property = self._resolve_rules()
        items = self.statement.get_items()
        deduction = cleaning_fee_deduction(
            reservation, rules_by_property.get(reservation.property_id),
            self.statement.week_end_date, self.statement.calculation_type,
        )
        if deduction > ZERO:
            sync_cleaning_items(
                items, [reservation], rules_by_property,
                self.statement.week_end_date, self.statement.calculation_type,
                self._labels(rules_by_property),
            )
        else:
            items = [
                item for item in items
                if not (item.auto_generated and item.reservation_id == reservation.id)
            ]
        return self._commit(reservations, items, 'update_cleaning_fee', rules_by_property)

    # =========================================================================
    # STATUS
    # =========================================================================

    def _transition(self, action):
        source, target = STATUS_TRANSITIONS[action]
        statement = self.statement
        if statement.status != source:
            raise InvalidStatusTransitionError(statement.status, target)

        statement.status = target
        update_fields = ['status', 'updated_at']
        if target == 'sent':
            statement.sent_at = timezone.now()
            update_fields.append('sent_at')
        statement.save(update_fields=update_fields)
        logger.info("Statement %s: %s -> %s", statement.pk, source, target)
        return statement

    def finalize(self):
        return self._transition('finalize')

    def reopen(self):
        return self._transition('reopen')

    def mark_sent(self):
        return self._transition('mark_sent')

    def change_status(self, target):
        """Dispatch a requested target status to the matching transition."""
        for action, (source, to_status) in STATUS_TRANSITIONS.items():
            if to_status == target and self.statement.status == source:
                return self._transition(action)
        raise InvalidStatusTransitionError(self.statement.status, target)
