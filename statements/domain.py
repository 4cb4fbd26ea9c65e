"""
Domain records used by the statement engine.

These are plain dataclasses, independent of the ORM, so the calculation
services can be exercised without a database. Statements store them as
JSON through ``to_dict()`` / ``from_dict()``.

Money is always ``Decimal``; dates are ``datetime.date``.
"""

from dataclasses import dataclass, field, fields
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

ZERO = Decimal('0.00')

ALLOWED_STATUSES = ('confirmed', 'accepted')

CHECKOUT = 'checkout'
CALENDAR = 'calendar'
CALCULATION_TYPES = (CHECKOUT, CALENDAR)


def to_decimal(value, default=ZERO):
    """Coerce user/JSON input to a finite Decimal. Empty values become ``default``."""
    if value is None or value == '':
        return default
    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValueError(f"Invalid amount: {value!r}")
    if not value.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return value


def to_optional_decimal(value):
    return to_decimal(value, default=None)


def to_date(value):
    """Coerce an ISO string / datetime / date to ``date`` (None passes through)."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise ValueError(f"Invalid date: {value!r}")


def _serialize(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, list):
        return list(value)
    return value


class RecordMixin:
    """JSON round-tripping shared by the records below."""

    DECIMAL_FIELDS = ()
    OPTIONAL_DECIMAL_FIELDS = ()
    DATE_FIELDS = ()

    def __post_init__(self):
        for name in self.DECIMAL_FIELDS:
            setattr(self, name, to_decimal(getattr(self, name)))
        for name in self.OPTIONAL_DECIMAL_FIELDS:
            setattr(self, name, to_optional_decimal(getattr(self, name)))
        for name in self.DATE_FIELDS:
            setattr(self, name, to_date(getattr(self, name)))

    def to_dict(self):
        return {f.name: _serialize(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def from_dict(cls, data):
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


# =============================================================================
# LISTING CONFIGURATION
# =============================================================================

@dataclass
class ListingFinancialConfig(RecordMixin):
    """Financial settings of one listing, as maintained by administrators."""
    property_id: int
    name: str = ''
    pm_fee_percentage: Decimal = Decimal('15.00')
    is_cohost_on_airbnb: bool = False
    disregard_tax: bool = False
    airbnb_pass_through_tax: bool = False
    cleaning_fee_pass_through: bool = False
    waive_commission: bool = False
    waive_commission_until: Optional[date] = None
    cleaning_fee: Decimal = ZERO
    new_pm_fee_enabled: bool = False
    new_pm_fee_percentage: Optional[Decimal] = None
    new_pm_fee_start_date: Optional[date] = None
    internal_notes: str = ''
    tags: list = field(default_factory=list)

    DECIMAL_FIELDS = ('pm_fee_percentage', 'cleaning_fee')
    OPTIONAL_DECIMAL_FIELDS = ('new_pm_fee_percentage',)
    DATE_FIELDS = ('waive_commission_until', 'new_pm_fee_start_date')


# =============================================================================
# RESERVATIONS & EXPENSES
# =============================================================================

@dataclass
class Reservation(RecordMixin):
    """
    A booking as delivered by the channel manager, or a custom booking
    entered by hand on a statement (``is_custom``).

    For calendar statements ``client_revenue`` is already prorated upstream.
    """
    id: str
    property_id: Optional[int]
    guest_name: str
    check_in_date: date
    check_out_date: date
    source: str = ''
    status: str = 'confirmed'
    gross_amount: Decimal = ZERO
    nights: Optional[int] = None
    has_detailed_finance: bool = False
    base_rate: Decimal = ZERO
    cleaning_and_other_fees: Decimal = ZERO
    platform_fees: Decimal = ZERO
    client_revenue: Decimal = ZERO
    client_tax_responsibility: Decimal = ZERO
    cleaning_fee: Optional[Decimal] = None
    created_at: Optional[date] = None
    is_custom: bool = False
    luxury_lodging_fee: Optional[Decimal] = None
    description: str = ''

    DECIMAL_FIELDS = (
        'gross_amount', 'base_rate', 'cleaning_and_other_fees', 'platform_fees',
        'client_revenue', 'client_tax_responsibility',
    )
    OPTIONAL_DECIMAL_FIELDS = ('cleaning_fee', 'luxury_lodging_fee')
    DATE_FIELDS = ('check_in_date', 'check_out_date', 'created_at')

    def __post_init__(self):
        super().__post_init__()
        self.id = str(self.id)

    @property
    def is_airbnb(self):
        return 'airbnb' in (self.source or '').lower()

    @property
    def is_in_scope(self):
        return self.status in ALLOWED_STATUSES

    @property
    def stay_nights(self):
        if self.nights:
            return self.nights
        return (self.check_out_date - self.check_in_date).days

    def overlaps(self, period_start, period_end):
        return self.check_in_date <= period_end and self.check_out_date > period_start

    def summary(self):
        """Compact form used for the overlapping-reservations list."""
        return {
            'id': self.id,
            'property_id': self.property_id,
            'guest_name': self.guest_name,
            'check_in_date': self.check_in_date.isoformat(),
            'check_out_date': self.check_out_date.isoformat(),
            'nights': self.stay_nights,
        }


LL_COVER_MARKERS = ('ll cover', 'llcover')


@dataclass
class ExpenseItem(RecordMixin):
    """
    A cost or credit. ``amount`` is held as an absolute value; ``type``
    decides whether it is added (upsell) or subtracted (expense).
    """
    id: str
    property_id: Optional[int]
    date: date
    description: str = ''
    category: str = ''
    amount: Decimal = ZERO
    type: str = 'expense'
    vendor: str = ''
    hidden: bool = False
    hidden_reason: Optional[str] = None

    DECIMAL_FIELDS = ('amount',)
    DATE_FIELDS = ('date',)

    def __post_init__(self):
        super().__post_init__()
        self.id = str(self.id)
        self.amount = abs(self.amount)
        kind = (self.type or '').lower()
        self.type = 'upsell' if kind == 'upsell' or (self.category or '').lower() == 'upsell' else 'expense'

    @property
    def is_ll_cover(self):
        haystack = ' '.join([self.description or '', self.vendor or '', self.category or '']).lower()
        return any(marker in haystack for marker in LL_COVER_MARKERS)


# =============================================================================
# STATEMENT LINE ITEMS
# =============================================================================

REVENUE = 'revenue'
EXPENSE = 'expense'
UPSELL = 'upsell'

HIDDEN_MANUAL = 'manual'
HIDDEN_LL_COVER = 'll_cover'

AUTO_CLEANING_PREFIX = 'Cleaning Fee - '


@dataclass
class LineItem(RecordMixin):
    """One line on a statement. ``id`` is stable for the statement's lifetime."""
    id: str
    type: str
    description: str
    amount: Decimal
    date: Optional[date] = None
    category: str = ''
    vendor: str = ''
    property_id: Optional[int] = None
    reservation_id: Optional[str] = None
    expense_id: Optional[str] = None
    hidden: bool = False
    hidden_reason: Optional[str] = None
    auto_generated: bool = False

    DECIMAL_FIELDS = ('amount',)
    DATE_FIELDS = ('date',)

    @property
    def is_visible(self):
        return not self.hidden

    def _mentions(self, *words):
        text = f"{self.category or ''} {self.description or ''}".lower()
        return any(word in text for word in words)

    @property
    def is_cleaning(self):
        return self._mentions('cleaning')

    @property
    def is_cleaning_or_supplies(self):
        return self._mentions('cleaning', 'supplies')
