"""
Services package.

Re-exports all service classes so imports stay short:
    from statements.services import StatementGenerationService
"""

from .rules import RuleResolver, ResolvedRules
from .calculation_service import calculate_reservation_payout, aggregate_totals
from .assembly_service import StatementAssembler
from .mutation_service import StatementMutator
from .recalculation_service import StatementRecalculator
from .generation_service import StatementGenerationService
from .sources import StatementDataSource, DatabaseDataSource
from .cache import CancelledCountCache, NullCountCache
from .cancellation_service import CancelledReservationService
from .import_service import ChannelImportService

__all__ = [
    'RuleResolver',
    'ResolvedRules',
    'calculate_reservation_payout',
    'aggregate_totals',
    'StatementAssembler',
    'StatementMutator',
    'StatementRecalculator',
    'StatementGenerationService',
    'StatementDataSource',
    'DatabaseDataSource',
    'CancelledCountCache',
    'NullCountCache',
    'CancelledReservationService',
    'ChannelImportService',
]
