from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Listing',
            fields=[
                ('id', models.IntegerField(help_text='Channel-manager listing ID', primary_key=True, serialize=False)),
                ('name', models.CharField(help_text='Original name from the channel manager', max_length=255)),
                ('display_name', models.CharField(blank=True, max_length=255)),
                ('nickname', models.CharField(blank=True, max_length=255)),
                ('pm_fee_percentage', models.DecimalField(
                    decimal_places=2, default=Decimal('15.00'), max_digits=5,
                    help_text='Property management fee percentage (e.g., 15.00 for 15%)',
                    validators=[
                        django.core.validators.MinValueValidator(Decimal('0')),
                        django.core.validators.MaxValueValidator(Decimal('100')),
                    ],
                )),
                ('new_pm_fee_enabled', models.BooleanField(
                    default=False, help_text='Apply a new PM fee to bookings created on/after the start date')),
                ('new_pm_fee_percentage', models.DecimalField(
                    blank=True, decimal_places=2, max_digits=5, null=True,
                    validators=[
                        django.core.validators.MinValueValidator(Decimal('0')),
                        django.core.validators.MaxValueValidator(Decimal('100')),
                    ],
                )),
                ('new_pm_fee_start_date', models.DateField(blank=True, null=True)),
                ('waive_commission', models.BooleanField(
                    default=False, help_text='Show the PM fee on statements but do not deduct it')),
                ('waive_commission_until', models.DateField(
                    blank=True, help_text='Last day of the waiver (empty = indefinite)', null=True)),
                ('is_cohost_on_airbnb', models.BooleanField(
                    default=False, help_text='Airbnb pays the owner directly; only commission is billed')),
                ('airbnb_pass_through_tax', models.BooleanField(
                    default=False, help_text='Airbnb tax is passed to the owner and added to gross payout')),
                ('disregard_tax', models.BooleanField(default=False, help_text='Never add tax to gross payout')),
                ('cleaning_fee_pass_through', models.BooleanField(
                    default=False,
                    help_text='Charge the guest-paid cleaning fee instead of actual cleaning expenses')),
                ('cleaning_fee', models.DecimalField(
                    decimal_places=2, default=Decimal('0.00'), help_text='Default guest-paid cleaning fee',
                    max_digits=10)),
                ('internal_notes', models.TextField(blank=True)),
                ('tags', models.TextField(blank=True, help_text='Comma-separated tags for grouping and bulk generation')),
                ('is_active', models.BooleanField(db_index=True, default=True)),
                ('last_synced_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Listing',
                'verbose_name_plural': 'Listings',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Statement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('property_id', models.IntegerField(
                    blank=True, db_index=True, help_text='Listing ID (empty for combined statements)', null=True)),
                ('property_ids', models.JSONField(blank=True, default=list, help_text='All listing IDs on the statement')),
                ('property_name', models.CharField(blank=True, max_length=255)),
                ('property_names', models.TextField(blank=True)),
                ('is_combined_statement', models.BooleanField(default=False)),
                ('week_start_date', models.DateField()),
                ('week_end_date', models.DateField()),
                ('calculation_type', models.CharField(
                    choices=[('checkout', 'Checkout-based'), ('calendar', 'Calendar-based')],
                    default='checkout', max_length=10)),
                ('total_revenue', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('total_expenses', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('total_upsells', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('pm_commission', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('pm_percentage', models.DecimalField(decimal_places=2, default=Decimal('15.00'), max_digits=7)),
                ('tech_fees', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('insurance_fees', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('total_cleaning_fee', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('owner_payout', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('status', models.CharField(
                    choices=[('draft', 'Draft'), ('final', 'Final'), ('sent', 'Sent')],
                    db_index=True, default='draft', max_length=10)),
                ('sent_at', models.DateTimeField(blank=True, null=True)),
                ('reservations', models.JSONField(blank=True, default=list)),
                ('items', models.JSONField(blank=True, default=list)),
                ('listing_settings_snapshot', models.JSONField(blank=True, default=dict)),
                ('internal_notes', models.TextField(blank=True)),
                ('cleaning_mismatch_warning', models.JSONField(blank=True, null=True)),
                ('should_convert_to_calendar', models.BooleanField(default=False)),
                ('overlapping_reservations', models.JSONField(blank=True, default=list)),
                ('duplicate_warnings', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Statement',
                'verbose_name_plural': 'Statements',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['week_start_date', 'week_end_date'], name='stmt_period_idx'),
                    models.Index(
                        fields=['property_id', 'week_start_date', 'week_end_date'], name='stmt_property_period_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='GenerationJob',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('job_type', models.CharField(default='bulk_statement_generation', max_length=50)),
                ('status', models.CharField(
                    choices=[
                        ('queued', 'Queued'),
                        ('processing', 'Processing'),
                        ('completed', 'Completed'),
                        ('completed_with_errors', 'Completed with Errors'),
                        ('failed', 'Failed'),
                    ],
                    db_index=True, default='queued', max_length=30)),
                ('params', models.JSONField(blank=True, default=dict)),
                ('progress', models.PositiveIntegerField(default=0)),
                ('total', models.PositiveIntegerField(default=0)),
                ('result', models.JSONField(blank=True, null=True)),
                ('errors', models.JSONField(blank=True, default=list)),
                ('error', models.TextField(blank=True)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Generation Job',
                'verbose_name_plural': 'Generation Jobs',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='ExpenseRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('external_id', models.CharField(max_length=64, unique=True)),
                ('date', models.DateField(db_index=True)),
                ('description', models.CharField(blank=True, max_length=255)),
                ('category', models.CharField(blank=True, max_length=100)),
                ('vendor', models.CharField(blank=True, max_length=200)),
                ('amount', models.DecimalField(
                    decimal_places=2, help_text='Absolute amount; the type decides the sign', max_digits=12)),
                ('type', models.CharField(
                    choices=[('expense', 'Expense'), ('upsell', 'Upsell')], default='expense', max_length=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('listing', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name='expenses', to='statements.listing')),
            ],
            options={
                'verbose_name': 'Expense',
                'verbose_name_plural': 'Expenses',
                'ordering': ['date'],
            },
        ),
        migrations.CreateModel(
            name='ChannelReservation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('external_id', models.CharField(max_length=64, unique=True)),
                ('guest_name', models.CharField(max_length=200)),
                ('check_in_date', models.DateField(db_index=True)),
                ('check_out_date', models.DateField(db_index=True)),
                ('nights', models.PositiveIntegerField(blank=True, null=True)),
                ('source', models.CharField(blank=True, max_length=100)),
                ('status', models.CharField(
                    choices=[
                        ('confirmed', 'Confirmed'),
                        ('accepted', 'Accepted'),
                        ('cancelled', 'Cancelled'),
                        ('inquiry', 'Inquiry'),
                        ('declined', 'Declined'),
                    ],
                    db_index=True, default='confirmed', max_length=20)),
                ('gross_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('has_detailed_finance', models.BooleanField(default=False)),
                ('base_rate', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('cleaning_and_other_fees', models.DecimalField(
                    decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('platform_fees', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('client_revenue', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('client_tax_responsibility', models.DecimalField(
                    decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('cleaning_fee', models.DecimalField(
                    blank=True, decimal_places=2, max_digits=10, null=True,
                    help_text='Guest-paid cleaning fee (overrides the listing default)')),
                ('booked_at', models.DateField(blank=True, null=True)),
                ('raw_data', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('listing', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name='reservations',
                    to='statements.listing')),
            ],
            options={
                'verbose_name': 'Channel Reservation',
                'verbose_name_plural': 'Channel Reservations',
                'ordering': ['check_in_date'],
                'indexes': [
                    models.Index(fields=['listing', 'check_out_date', 'status'], name='res_listing_checkout_idx'),
                    models.Index(fields=['listing', 'check_in_date'], name='res_listing_checkin_idx'),
                ],
            },
        ),
    ]
