"""
Engine settings, read from the ``STATEMENTS`` dict in Django settings.

Usage:
    from statements.conf import get_setting
    fee = get_setting('DEFAULT_PM_FEE_PERCENTAGE')
"""

from decimal import Decimal

from django.conf import settings

DEFAULTS = {
    'DEFAULT_PM_FEE_PERCENTAGE': Decimal('15.00'),
    'TECH_FEE_PER_PROPERTY': Decimal('50.00'),
    'INSURANCE_FEE_PER_PROPERTY': Decimal('25.00'),
    'LONG_STAY_NIGHTS': 14,
    'RECALCULATION_TOLERANCE': Decimal('0.01'),
    'CLEANING_ROUNDING_INCREMENT': Decimal('5'),
    'BULK_BATCH_SIZE': 5,
    'CANCELLED_COUNT_TTL': 600,
}

DECIMAL_SETTINGS = {
    'DEFAULT_PM_FEE_PERCENTAGE',
    'TECH_FEE_PER_PROPERTY',
    'INSURANCE_FEE_PER_PROPERTY',
    'RECALCULATION_TOLERANCE',
    'CLEANING_ROUNDING_INCREMENT',
}


def get_setting(name):
    """Return an engine setting, falling back to the built-in default."""
    overrides = getattr(settings, 'STATEMENTS', {}) or {}
    value = overrides.get(name, DEFAULTS[name])
    if name in DECIMAL_SETTINGS and not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value
