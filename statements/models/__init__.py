"""
Statement models package.

Re-exports all models so Django migrations and imports work unchanged:
    from statements.models import Listing, Statement, etc.
"""

# Core: Listing financial configuration
from .core import Listing

# Channel data: imported reservations and expenses
from .channel import ChannelReservation, ExpenseRecord

# Statements: payout statements and bulk generation jobs
from .statements import Statement, GenerationJob

__all__ = [
    'Listing',
    'ChannelReservation', 'ExpenseRecord',
    'Statement', 'GenerationJob',
]
