"""
Consistency Recalculator.

Listing settings can change after a statement was generated. Before a
statement is displayed or exported its totals are recomputed against the
current settings; the stored row is only rewritten when the owner payout
moved by more than the tolerance (default 0.01).
"""

import logging

from statements.conf import get_setting
from statements.services.assembly_service import StatementAssembler

logger = logging.getLogger(__name__)


class StatementRecalculator:
    """
    Usage:
        recalculator = StatementRecalculator(resolver)
        changed = recalculator.refresh(statement)
    """

    def __init__(self, resolver, assembler=None, tolerance=None):
        self.resolver = resolver
        self.assembler = assembler or StatementAssembler()
        self.tolerance = tolerance if tolerance is not None else get_setting('RECALCULATION_TOLERANCE')

    def refresh(self, statement):
        """
        Recompute totals in memory and persist them if the payout drifted.

        Args:
            statement: Statement instance

        Returns:
            bool: True when the stored totals were rewritten
        """
        from statements.models import Statement

        property_ids = statement.statement_property_ids
        rules_by_property = self.resolver.resolve_many(property_ids, statement.week_end_date)
        evaluation = self.assembler.evaluate(
            statement.get_reservations(), statement.get_items(), rules_by_property,
            property_ids, statement.week_end_date, statement.calculation_type,
        )

        stored_payout = statement.owner_payout
        totals = evaluation.totals
        statement.apply_totals(totals)
        statement.cleaning_mismatch_warning = evaluation.cleaning_mismatch_warning

        if stored_payout is not None and abs(totals.owner_payout - stored_payout) <= self.tolerance:
            return False

        logger.warning(
            "Statement %s owner payout drifted from %s to %s; rewriting totals",
            statement.pk, stored_payout, totals.owner_payout,
        )
        if statement.pk is not None:
            fields = totals.as_fields()
            fields['cleaning_mismatch_warning'] = evaluation.cleaning_mismatch_warning
            Statement.objects.filter(pk=statement.pk).update(**fields)
        return True
