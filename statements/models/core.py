"""
Core models: Listing and its financial configuration.
"""

from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from statements.domain import ListingFinancialConfig


class Listing(models.Model):
    """
    A rental property as known to the channel manager.

    Holds the financial settings administrators maintain per property.
    The statement engine only ever reads them through ``financial_config()``.
    """
    id = models.IntegerField(
        primary_key=True,
        help_text="Channel-manager listing ID"
    )
    name = models.CharField(
        max_length=255,
        help_text="Original name from the channel manager"
    )
    display_name = models.CharField(max_length=255, blank=True)
    nickname = models.CharField(max_length=255, blank=True)

    # Commission
    pm_fee_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal('15.00'),
        validators=[MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('100'))],
        help_text="Property management fee percentage (e.g., 15.00 for 15%)"
    )
    new_pm_fee_enabled = models.BooleanField(
        default=False,
        help_text="Apply a new PM fee to bookings created on/after the start date"
    )
    new_pm_fee_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('100'))],
    )
    new_pm_fee_start_date = models.DateField(null=True, blank=True)
    waive_commission = models.BooleanField(
        default=False,
        help_text="Show the PM fee on statements but do not deduct it"
    )
    waive_commission_until = models.DateField(
        null=True,
        blank=True,
        help_text="Last day of the waiver (empty = indefinite)"
    )

    # Channel / tax
    is_cohost_on_airbnb = models.BooleanField(
        default=False,
        help_text="Airbnb pays the owner directly; only commission is billed"
    )
    airbnb_pass_through_tax = models.BooleanField(
        default=False,
        help_text="Airbnb tax is passed to the owner and added to gross payout"
    )
    disregard_tax = models.BooleanField(
        default=False,
        help_text="Never add tax to gross payout"
    )

    # Cleaning
    cleaning_fee_pass_through = models.BooleanField(
        default=False,
        help_text="Charge the guest-paid cleaning fee instead of actual cleaning expenses"
    )
    cleaning_fee = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text="Default guest-paid cleaning fee"
    )

    internal_notes = models.TextField(blank=True)
    tags = models.TextField(
        blank=True,
        help_text="Comma-separated tags for grouping and bulk generation"
    )

    is_active = models.BooleanField(default=True, db_index=True)
    last_synced_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        verbose_name = "Listing"
        verbose_name_plural = "Listings"

    def __str__(self):
        return self.label

    @property
    def label(self):
        return self.nickname or self.display_name or self.name

    @property
    def tag_list(self):
        return [t.strip() for t in (self.tags or '').split(',') if t.strip()]

    def has_tag(self, tag):
        wanted = (tag or '').strip().lower()
        return any(t.lower() == wanted for t in self.tag_list)

    @classmethod
    def with_tag(cls, tag):
        """Active listings carrying ``tag`` (case-insensitive)."""
        return [listing for listing in cls.objects.filter(is_active=True) if listing.has_tag(tag)]

    def financial_config(self):
        return ListingFinancialConfig(
            property_id=self.id,
            name=self.label,
            pm_fee_percentage=(
                self.pm_fee_percentage if self.pm_fee_percentage is not None else Decimal('15.00')
            ),
            is_cohost_on_airbnb=self.is_cohost_on_airbnb,
            disregard_tax=self.disregard_tax,
            airbnb_pass_through_tax=self.airbnb_pass_through_tax,
            cleaning_fee_pass_through=self.cleaning_fee_pass_through,
            waive_commission=self.waive_commission,
            waive_commission_until=self.waive_commission_until,
            cleaning_fee=self.cleaning_fee or Decimal('0.00'),
            new_pm_fee_enabled=self.new_pm_fee_enabled,
            new_pm_fee_percentage=self.new_pm_fee_percentage,
            new_pm_fee_start_date=self.new_pm_fee_start_date,
            internal_notes=self.internal_notes,
            tags=self.tag_list,
        )
