"""
Owner statements admin configuration.

Supports:
- Listing financial settings (fees, waivers, pass-through flags)
- Imported channel reservations and expenses
- Statements (read-mostly; totals are always derived)
- Bulk generation jobs
"""

from django.contrib import admin
from django.utils.html import format_html

from .models import ChannelReservation, ExpenseRecord, GenerationJob, Listing, Statement


# =============================================================================
# LISTINGS
# =============================================================================

@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    """Financial settings per listing."""
    list_display = [
        'id', 'label', 'pm_fee_percentage', 'waive_commission', 'waive_commission_until',
        'is_cohost_on_airbnb', 'cleaning_fee_pass_through', 'tags', 'is_active',
    ]
    list_filter = [
        'is_active', 'waive_commission', 'is_cohost_on_airbnb',
        'cleaning_fee_pass_through', 'disregard_tax', 'airbnb_pass_through_tax',
    ]
    search_fields = ['name', 'display_name', 'nickname', 'tags']
    ordering = ['name']

    fieldsets = (
        (None, {
            'fields': ('id', 'name', 'display_name', 'nickname', 'is_active', 'tags')
        }),
        ('Commission', {
            'fields': (
                'pm_fee_percentage',
                ('new_pm_fee_enabled', 'new_pm_fee_percentage', 'new_pm_fee_start_date'),
                ('waive_commission', 'waive_commission_until'),
            ),
            'description': 'A scheduled PM fee applies to bookings created on or after its start date'
        }),
        ('Channel & Tax', {
            'fields': ('is_cohost_on_airbnb', 'airbnb_pass_through_tax', 'disregard_tax'),
        }),
        ('Cleaning', {
            'fields': ('cleaning_fee_pass_through', 'cleaning_fee'),
        }),
        ('Notes', {
            'fields': ('internal_notes',),
            'classes': ('collapse',)
        }),
    )


# =============================================================================
# CHANNEL DATA
# =============================================================================

@admin.register(ChannelReservation)
class ChannelReservationAdmin(admin.ModelAdmin):
    list_display = [
        'external_id', 'listing', 'guest_name', 'check_in_date', 'check_out_date',
        'source', 'status', 'gross_amount', 'client_revenue',
    ]
    list_filter = ['status', 'source', 'has_detailed_finance']
    search_fields = ['external_id', 'guest_name', 'listing__name', 'listing__nickname']
    date_hierarchy = 'check_out_date'
    raw_id_fields = ['listing']
    readonly_fields = ['raw_data', 'created_at', 'updated_at']


@admin.register(ExpenseRecord)
class ExpenseRecordAdmin(admin.ModelAdmin):
    list_display = ['external_id', 'listing', 'date', 'description', 'category', 'vendor', 'type', 'amount']
    list_filter = ['type', 'category']
    search_fields = ['external_id', 'description', 'vendor', 'listing__name']
    date_hierarchy = 'date'
    raw_id_fields = ['listing']


# =============================================================================
# STATEMENTS
# =============================================================================

@admin.register(Statement)
class StatementAdmin(admin.ModelAdmin):
    list_display = [
        'id', 'property_name', 'week_start_date', 'week_end_date', 'calculation_type',
        'total_revenue', 'pm_commission', 'payout_display', 'status', 'warnings_display',
    ]
    list_filter = ['status', 'calculation_type', 'is_combined_statement']
    search_fields = ['property_name', 'property_names']
    date_hierarchy = 'week_end_date'
    readonly_fields = [
        'total_revenue', 'total_expenses', 'total_upsells', 'pm_commission', 'pm_percentage',
        'tech_fees', 'insurance_fees', 'total_cleaning_fee', 'owner_payout',
        'cleaning_mismatch_warning', 'should_convert_to_calendar', 'overlapping_reservations',
        'duplicate_warnings', 'listing_settings_snapshot', 'sent_at', 'created_at', 'updated_at',
    ]

    fieldsets = (
        (None, {
            'fields': (
                'property_id', 'property_ids', 'property_name', 'property_names',
                'is_combined_statement', 'status', 'sent_at',
            )
        }),
        ('Period', {
            'fields': ('week_start_date', 'week_end_date', 'calculation_type'),
        }),
        ('Totals', {
            'fields': (
                'total_revenue', 'pm_commission', 'pm_percentage', 'total_upsells',
                'total_expenses', 'total_cleaning_fee', 'tech_fees', 'insurance_fees', 'owner_payout',
            ),
            'description': 'Derived from reservations and visible line items'
        }),
        ('Warnings', {
            'fields': (
                'cleaning_mismatch_warning', 'should_convert_to_calendar',
                'overlapping_reservations', 'duplicate_warnings',
            ),
            'classes': ('collapse',)
        }),
        ('Snapshots', {
            'fields': ('internal_notes', 'listing_settings_snapshot', 'reservations', 'items'),
            'classes': ('collapse',)
        }),
    )

    def payout_display(self, obj):
        if obj.is_negative_balance:
            return format_html('<span style="color: #c00;">{}</span>', obj.owner_payout)
        return obj.owner_payout
    payout_display.short_description = 'Owner Payout'

    def warnings_display(self, obj):
        flags = []
        if obj.cleaning_mismatch_warning:
            flags.append('cleaning')
        if obj.should_convert_to_calendar:
            flags.append('calendar')
        if obj.duplicate_warnings:
            flags.append('duplicates')
        return ', '.join(flags) or '-'
    warnings_display.short_description = 'Warnings'


@admin.register(GenerationJob)
class GenerationJobAdmin(admin.ModelAdmin):
    list_display = ['id', 'job_type', 'status', 'progress', 'total', 'started_at', 'completed_at']
    list_filter = ['status', 'job_type']
    readonly_fields = [
        'job_type', 'status', 'params', 'progress', 'total', 'result', 'errors', 'error',
        'started_at', 'completed_at', 'created_at', 'updated_at',
    ]
