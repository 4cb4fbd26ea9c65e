"""
Financial Rule Resolver.

Turns a listing's financial configuration into the rule set that applies
to one statement period. The only period-dependent rule is the commission
waiver: it is active when ``waive_commission`` is set and the statement's
period end (start of day) is not after the waiver's last day (end of day).
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

from statements.conf import get_setting
from statements.domain import ZERO, ListingFinancialConfig
from statements.exceptions import ListingNotFoundError

logger = logging.getLogger(__name__)

END_OF_DAY = time(23, 59, 59)


def is_waiver_active(waive_commission, waive_commission_until, period_end):
    """
    Args:
        waive_commission: bool flag from the listing
        waive_commission_until: date or None (None = indefinite)
        period_end: statement end date

    Returns:
        bool
    """
    if not waive_commission:
        return False
    if waive_commission_until is None:
        return True
    statement_end = datetime.combine(period_end, time.min)
    waiver_end = datetime.combine(waive_commission_until, END_OF_DAY)
    return statement_end <= waiver_end


@dataclass(frozen=True)
class ResolvedRules:
    """Rules of one listing for one statement period."""
    property_id: Optional[int]
    name: str
    pm_fee_percentage: Decimal
    is_cohost_on_airbnb: bool = False
    disregard_tax: bool = False
    airbnb_pass_through_tax: bool = False
    cleaning_fee_pass_through: bool = False
    waiver_active: bool = False
    cleaning_fee: Decimal = ZERO
    new_pm_fee_enabled: bool = False
    new_pm_fee_percentage: Optional[Decimal] = None
    new_pm_fee_start_date: Optional[date] = None
    internal_notes: str = ''
    is_default: bool = False

    def pm_fee_for(self, reservation):
        """
        PM fee percentage for a reservation.

        A scheduled fee change applies to bookings created on or after its
        start date; bookings without a creation date keep the base fee.
        """
        if (not self.new_pm_fee_enabled or self.new_pm_fee_start_date is None
                or self.new_pm_fee_percentage is None):
            return self.pm_fee_percentage
        if reservation.created_at is None:
            return self.pm_fee_percentage
        if reservation.created_at >= self.new_pm_fee_start_date:
            return self.new_pm_fee_percentage
        return self.pm_fee_percentage

    def snapshot(self):
        return {
            'name': self.name,
            'pm_fee_percentage': str(self.pm_fee_percentage),
            'is_cohost_on_airbnb': self.is_cohost_on_airbnb,
            'disregard_tax': self.disregard_tax,
            'airbnb_pass_through_tax': self.airbnb_pass_through_tax,
            'cleaning_fee_pass_through': self.cleaning_fee_pass_through,
            'waiver_active': self.waiver_active,
            'cleaning_fee': str(self.cleaning_fee),
            'new_pm_fee_enabled': self.new_pm_fee_enabled,
            'new_pm_fee_percentage': (
                str(self.new_pm_fee_percentage) if self.new_pm_fee_percentage is not None else None
            ),
            'new_pm_fee_start_date': (
                self.new_pm_fee_start_date.isoformat() if self.new_pm_fee_start_date else None
            ),
        }


def resolve_rules(config, period_end):
    """Resolve one ``ListingFinancialConfig`` for a statement ending on ``period_end``."""
    return ResolvedRules(
        property_id=config.property_id,
        name=config.name,
        pm_fee_percentage=config.pm_fee_percentage,
        is_cohost_on_airbnb=config.is_cohost_on_airbnb,
        disregard_tax=config.disregard_tax,
        airbnb_pass_through_tax=config.airbnb_pass_through_tax,
        cleaning_fee_pass_through=config.cleaning_fee_pass_through,
        waiver_active=is_waiver_active(
            config.waive_commission, config.waive_commission_until, period_end
        ),
        cleaning_fee=config.cleaning_fee,
        new_pm_fee_enabled=config.new_pm_fee_enabled,
        new_pm_fee_percentage=config.new_pm_fee_percentage,
        new_pm_fee_start_date=config.new_pm_fee_start_date,
        internal_notes=config.internal_notes,
    )


def default_rules(property_id=None):
    """Safe fallback: default PM fee, no pass-through, no waiver, no co-hosting."""
    return ResolvedRules(
        property_id=property_id,
        name=f"Property {property_id}" if property_id is not None else '',
        pm_fee_percentage=get_setting('DEFAULT_PM_FEE_PERCENTAGE'),
        is_default=True,
    )


class RuleResolver:
    """
    Resolves listing rules through a config lookup.

    Usage:
        resolver = RuleResolver(data_source.get_listing_config)
        rules = resolver.resolve(42, date(2025, 6, 30))
        rules_map = resolver.resolve_many([42, 43], date(2025, 6, 30))
    """

    def __init__(self, config_lookup):
        """
        Args:
            config_lookup: callable(property_id) -> ListingFinancialConfig,
                raising ListingNotFoundError for unknown ids
        """
        self.config_lookup = config_lookup

    def resolve(self, property_id, period_end, strict=True):
        """
        Resolve one listing.

        With ``strict`` an unknown listing raises ListingNotFoundError;
        otherwise the default rule set is substituted.
        """
        try:
            config = self.config_lookup(property_id)
        except ListingNotFoundError:
            if strict:
                raise
            logger.warning("Listing %s not found, using default rules", property_id)
            return default_rules(property_id)
        if not isinstance(config, ListingFinancialConfig):
            config = ListingFinancialConfig.from_dict(config)
        return resolve_rules(config, period_end)

    def resolve_many(self, property_ids, period_end):
        """Lenient resolution for combined statements: never fails as a whole."""
        return {
            property_id: self.resolve(property_id, period_end, strict=False)
            for property_id in property_ids
        }
