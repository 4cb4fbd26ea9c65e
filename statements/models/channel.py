"""
Channel data: reservations and expenses as imported from the channel
manager and expense exports. Statements copy what they need from here.
"""

from decimal import Decimal

from django.db import models

from statements.domain import ExpenseItem, Reservation

from .core import Listing


class ChannelReservation(models.Model):
    """Booking record imported from the channel manager."""
    STATUS_CHOICES = [
        ('confirmed', 'Confirmed'),
        ('accepted', 'Accepted'),
        ('cancelled', 'Cancelled'),
        ('inquiry', 'Inquiry'),
        ('declined', 'Declined'),
    ]

    external_id = models.CharField(max_length=64, unique=True)
    listing = models.ForeignKey(
        Listing,
        on_delete=models.CASCADE,
        related_name='reservations'
    )

    guest_name = models.CharField(max_length=200)
    check_in_date = models.DateField(db_index=True)
    check_out_date = models.DateField(db_index=True)
    nights = models.PositiveIntegerField(null=True, blank=True)
    source = models.CharField(max_length=100, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='confirmed', db_index=True)

    gross_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    has_detailed_finance = models.BooleanField(default=False)
    base_rate = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    cleaning_and_other_fees = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    platform_fees = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    client_revenue = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    client_tax_responsibility = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    cleaning_fee = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Guest-paid cleaning fee (overrides the listing default)"
    )

    booked_at = models.DateField(null=True, blank=True)
    raw_data = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['check_in_date']
        verbose_name = "Channel Reservation"
        verbose_name_plural = "Channel Reservations"
        indexes = [
            models.Index(fields=['listing', 'check_out_date', 'status'], name='res_listing_checkout_idx'),
            models.Index(fields=['listing', 'check_in_date'], name='res_listing_checkin_idx'),
        ]

    def __str__(self):
        return f"{self.guest_name} ({self.check_in_date} → {self.check_out_date})"

    def to_domain(self):
        return Reservation(
            id=self.external_id,
            property_id=self.listing_id,
            guest_name=self.guest_name,
            check_in_date=self.check_in_date,
            check_out_date=self.check_out_date,
            nights=self.nights,
            source=self.source,
            status=self.status,
            gross_amount=self.gross_amount,
            has_detailed_finance=self.has_detailed_finance,
            base_rate=self.base_rate,
            cleaning_and_other_fees=self.cleaning_and_other_fees,
            platform_fees=self.platform_fees,
            client_revenue=self.client_revenue,
            client_tax_responsibility=self.client_tax_responsibility,
            cleaning_fee=self.cleaning_fee,
            created_at=self.booked_at,
        )


class ExpenseRecord(models.Model):
    """Cost or credit recorded against a listing."""
    TYPE_CHOICES = [
        ('expense', 'Expense'),
        ('upsell', 'Upsell'),
    ]

    external_id = models.CharField(max_length=64, unique=True)
    listing = models.ForeignKey(
        Listing,
        on_delete=models.CASCADE,
        related_name='expenses'
    )

    date = models.DateField(db_index=True)
    description = models.CharField(max_length=255, blank=True)
    category = models.CharField(max_length=100, blank=True)
    vendor = models.CharField(max_length=200, blank=True)
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Absolute amount; the type decides the sign"
    )
    type = models.CharField(max_length=10, choices=TYPE_CHOICES, default='expense')

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['date']
        verbose_name = "Expense"
        verbose_name_plural = "Expenses"

    def __str__(self):
        return f"{self.date} {self.description} ({self.amount})"

    def to_domain(self):
        return ExpenseItem(
            id=self.external_id,
            property_id=self.listing_id,
            date=self.date,
            description=self.description,
            category=self.category,
            vendor=self.vendor,
            amount=self.amount,
            type=self.type,
        )
