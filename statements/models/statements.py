"""
Statement models: Statement (owner payout statement) and GenerationJob
(bulk generation progress).
"""

from decimal import Decimal

from django.db import models
from django.utils import timezone

from statements.domain import LineItem, Reservation


class Statement(models.Model):
    """
    Owner payout statement for one property, or several (combined).

    Reservations and line items are stored as JSON snapshots. Totals are
    always derived from them by the calculation services; nothing writes
    a total directly.
    """
    STATUS_DRAFT = 'draft'
    STATUS_FINAL = 'final'
    STATUS_SENT = 'sent'
    STATUS_CHOICES = [
        (STATUS_DRAFT, 'Draft'),
        (STATUS_FINAL, 'Final'),
        (STATUS_SENT, 'Sent'),
    ]

    CALCULATION_CHOICES = [
        ('checkout', 'Checkout-based'),
        ('calendar', 'Calendar-based'),
    ]

    property_id = models.IntegerField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Listing ID (empty for combined statements)"
    )
    property_ids = models.JSONField(
        default=list,
        blank=True,
        help_text="All listing IDs on the statement"
    )
    property_name = models.CharField(max_length=255, blank=True)
    property_names = models.TextField(blank=True)
    is_combined_statement = models.BooleanField(default=False)

    week_start_date = models.DateField()
    week_end_date = models.DateField()
    calculation_type = models.CharField(max_length=10, choices=CALCULATION_CHOICES, default='checkout')

    # Totals
    total_revenue = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_expenses = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_upsells = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    pm_commission = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    pm_percentage = models.DecimalField(max_digits=7, decimal_places=2, default=Decimal('15.00'))
    tech_fees = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    insurance_fees = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    total_cleaning_fee = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    owner_payout = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_DRAFT, db_index=True)
    sent_at = models.DateTimeField(null=True, blank=True)

    # Snapshots
    reservations = models.JSONField(default=list, blank=True)
    items = models.JSONField(default=list, blank=True)
    listing_settings_snapshot = models.JSONField(default=dict, blank=True)
    internal_notes = models.TextField(blank=True)

    # Warnings
    cleaning_mismatch_warning = models.JSONField(null=True, blank=True)
    should_convert_to_calendar = models.BooleanField(default=False)
    overlapping_reservations = models.JSONField(default=list, blank=True)
    duplicate_warnings = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = "Statement"
        verbose_name_plural = "Statements"
        indexes = [
            models.Index(fields=['week_start_date', 'week_end_date'], name='stmt_period_idx'),
            models.Index(fields=['property_id', 'week_start_date', 'week_end_date'], name='stmt_property_period_idx'),
        ]

    def __str__(self):
        return f"{self.property_name or 'Statement'} {self.week_start_date} – {self.week_end_date}"

    # -------------------------------------------------------------------------
    # Snapshot access
    # -------------------------------------------------------------------------

    @property
    def statement_property_ids(self):
        if self.property_ids:
            return [int(pid) for pid in self.property_ids]
        if self.property_id is not None:
            return [self.property_id]
        return []

    def get_reservations(self):
        return [Reservation.from_dict(data) for data in (self.reservations or [])]

    def set_reservations(self, reservations):
        self.reservations = [r.to_dict() for r in reservations]

    def get_items(self):
        return [LineItem.from_dict(data) for data in (self.items or [])]

    def set_items(self, items):
        self.items = [item.to_dict() for item in items]

    def apply_totals(self, totals):
        for name, value in totals.as_fields().items():
            setattr(self, name, value)

    # -------------------------------------------------------------------------
    # Presentation
    # -------------------------------------------------------------------------

    @property
    def is_negative_balance(self):
        return self.owner_payout is not None and Decimal(self.owner_payout) < 0

    def as_list_item(self):
        """Flattened shape for statement lists."""
        return {
            'id': self.pk,
            'property_id': self.property_id,
            'property_ids': self.statement_property_ids,
            'property_name': self.property_name,
            'is_combined_statement': self.is_combined_statement,
            'week_start_date': self.week_start_date,
            'week_end_date': self.week_end_date,
            'calculation_type': self.calculation_type,
            'total_revenue': self.total_revenue,
            'total_expenses': self.total_expenses,
            'pm_commission': self.pm_commission,
            'pm_percentage': self.pm_percentage,
            'owner_payout': self.owner_payout,
            'status': self.status,
            'sent_at': self.sent_at,
            'has_cleaning_mismatch': self.cleaning_mismatch_warning is not None,
            'should_convert_to_calendar': self.should_convert_to_calendar,
            'is_negative_balance': self.is_negative_balance,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }

    def as_detail(self):
        """Full shape for the edit/detail screen."""
        data = self.as_list_item()
        data.update({
            'property_names': self.property_names,
            'total_upsells': self.total_upsells,
            'tech_fees': self.tech_fees,
            'insurance_fees': self.insurance_fees,
            'total_cleaning_fee': self.total_cleaning_fee,
            'reservations': self.reservations,
            'items': self.items,
            'cleaning_mismatch_warning': self.cleaning_mismatch_warning,
            'overlapping_reservations': self.overlapping_reservations,
            'duplicate_warnings': self.duplicate_warnings,
            'internal_notes': self.internal_notes,
            'listing_settings_snapshot': self.listing_settings_snapshot,
        })
        return data


class GenerationJob(models.Model):
    """Tracks a bulk statement generation run."""
    STATUS_CHOICES = [
        ('queued', 'Queued'),
        ('processing', 'Processing'),
        ('completed', 'Completed'),
        ('completed_with_errors', 'Completed with Errors'),
        ('failed', 'Failed'),
    ]

    job_type = models.CharField(max_length=50, default='bulk_statement_generation')
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default='queued', db_index=True)
    params = models.JSONField(default=dict, blank=True)

    progress = models.PositiveIntegerField(default=0)
    total = models.PositiveIntegerField(default=0)

    result = models.JSONField(null=True, blank=True)
    errors = models.JSONField(default=list, blank=True)
    error = models.TextField(blank=True)

    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = "Generation Job"
        verbose_name_plural = "Generation Jobs"

    def __str__(self):
        return f"{self.job_type} #{self.pk} - {self.get_status_display()}"

    @property
    def duration_seconds(self):
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def start(self, total):
        self.status = 'processing'
        self.total = total
        self.progress = 0
        self.started_at = timezone.now()
        self.save(update_fields=['status', 'total', 'progress', 'started_at', 'updated_at'])

    def checkpoint(self, progress):
        self.progress = min(progress, self.total) if self.total else progress
        self.save(update_fields=['progress', 'updated_at'])

    def add_error(self, property_id, message):
        if self.errors is None:
            self.errors = []
        self.errors.append({'property_id': property_id, 'message': str(message)})
        self.save(update_fields=['errors', 'updated_at'])

    def complete(self, result):
        self.status = 'completed_with_errors' if self.errors else 'completed'
        self.result = result
        self.progress = self.total
        self.completed_at = timezone.now()
        self.save(update_fields=['status', 'result', 'progress', 'completed_at', 'updated_at'])

    def fail(self, error):
        self.status = 'failed'
        self.error = str(error)
        self.completed_at = timezone.now()
        self.save(update_fields=['status', 'error', 'completed_at', 'updated_at'])

    def as_dict(self):
        return {
            'id': self.pk,
            'type': self.job_type,
            'status': self.status,
            'progress': self.progress,
            'total': self.total,
            'params': self.params,
            'result': self.result,
            'errors': self.errors,
            'error': self.error or None,
            'started_at': self.started_at,
            'completed_at': self.completed_at,
        }
