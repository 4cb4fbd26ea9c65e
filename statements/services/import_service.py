"""
Channel data import from Excel/CSV exports.

Reservations and expenses are upserted by their external id, so a file can
be re-imported after corrections.
"""

import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, Optional

import pandas as pd
from dateutil import parser as date_parser

logger = logging.getLogger(__name__)


class ChannelImportService:
    """
    Usage:
        service = ChannelImportService()
        result = service.import_file('reservations.xlsx', kind='reservations')
        result = service.import_file('expenses.csv', kind='expenses')
    """

    # =========================================================================
    # COLUMN MAPPING
    # =========================================================================
    RESERVATION_COLUMNS = {
        'external_id': ['Reservation ID', 'Reservation Id', 'ID', 'Res #', 'Res#', 'Confirmation'],
        'listing_id': ['Listing ID', 'Listing Id', 'Listing', 'Property ID', 'Property Id'],
        'guest_name': ['Guest', 'Guest Name', 'Name'],
        'check_in_date': ['Check In', 'Check-In', 'CheckIn', 'Arrival', 'Arrival Date'],
        'check_out_date': ['Check Out', 'Check-Out', 'CheckOut', 'Departure', 'Departure Date'],
        'nights': ['Nights', 'Number of Nights', 'LOS'],
        'source': ['Source', 'Channel', 'Channel Name'],
        'status': ['Status', 'Reservation Status'],
        'gross_amount': ['Gross Amount', 'Total', 'Total Price', 'Payout'],
        'base_rate': ['Base Rate', 'Accommodation'],
        'cleaning_and_other_fees': ['Cleaning And Other Fees', 'Fees'],
        'platform_fees': ['Platform Fees', 'Channel Fees', 'Host Fee'],
        'client_revenue': ['Client Revenue', 'Revenue'],
        'client_tax_responsibility': ['Client Tax Responsibility', 'Tax', 'Taxes'],
        'cleaning_fee': ['Cleaning Fee'],
        'booked_at': ['Booked At', 'Booking Date', 'Created', 'Reservation Date'],
    }

    EXPENSE_COLUMNS = {
        'external_id': ['Expense ID', 'Expense Id', 'ID'],
        'listing_id': ['Listing ID', 'Listing Id', 'Listing', 'Property ID', 'Property Id'],
        'date': ['Date', 'Expense Date'],
        'description': ['Description', 'Memo'],
        'category': ['Category', 'Type Category'],
        'vendor': ['Vendor', 'Payee'],
        'amount': ['Amount', 'Total'],
        'type': ['Type', 'Kind'],
    }

    REQUIRED = {
        'reservations': {'external_id', 'listing_id', 'check_in_date', 'check_out_date'},
        'expenses': {'external_id', 'listing_id', 'date', 'amount'},
    }

    STATUS_MAPPING = {
        'confirmed': ['confirmed', 'new', 'modified', 'booked'],
        'accepted': ['accepted'],
        'cancelled': ['cancelled', 'canceled', 'cancelled by guest', 'cancelled by host'],
        'inquiry': ['inquiry', 'pending', 'awaiting payment'],
        'declined': ['declined', 'expired'],
    }

    FINANCE_FIELDS = ('base_rate', 'client_revenue', 'client_tax_responsibility')

    def __init__(self):
        self.errors = []
        self.stats = {
            'rows_total': 0,
            'rows_created': 0,
            'rows_updated': 0,
            'rows_skipped': 0,
        }

    def import_file(self, file_path: str, kind: str = 'reservations') -> Dict:
        """
        Import one file.

        Args:
            file_path: .xlsx, .xls or .csv path
            kind: 'reservations' or 'expenses'

        Returns:
            dict with counts and row errors
        """
        if kind not in self.REQUIRED:
            raise ValueError(f"Unknown import kind: {kind}")

        started = datetime.now()
        df = self._read_file(Path(file_path))
        if df is not None:
            columns = self.RESERVATION_COLUMNS if kind == 'reservations' else self.EXPENSE_COLUMNS
            df = self._map_columns(df, columns, self.REQUIRED[kind])
            if not any(e['row'] == 0 for e in self.errors):
                self._process_dataframe(df, kind)

        result = self._build_result()
        result['duration_seconds'] = (datetime.now() - started).total_seconds()
        logger.info(
            "Imported %s from %s: %d created, %d updated, %d skipped",
            kind, file_path, self.stats['rows_created'], self.stats['rows_updated'], self.stats['rows_skipped'],
        )
        return result

    # =========================================================================
    # READING
    # =========================================================================

    def _read_file(self, file_path: Path) -> Optional[pd.DataFrame]:
        suffix = file_path.suffix.lower()
        try:
            if suffix in ['.xlsx', '.xls']:
                return pd.read_excel(file_path)
            if suffix == '.csv':
                for encoding in ['utf-8', 'latin1']:
                    try:
                        return pd.read_csv(file_path, encoding=encoding, index_col=False)
                    except UnicodeDecodeError:
                        continue
            self.errors.append({'row': 0, 'message': f'Unsupported file format: {suffix}'})
        except (OSError, ValueError) as e:
            self.errors.append({'row': 0, 'message': f'Error reading file: {e}'})
        return None

    def _map_columns(self, df: pd.DataFrame, mapping: Dict, required: set) -> pd.DataFrame:
        """Map source columns to standard column names."""
        df.columns = [str(col).strip() for col in df.columns]
        column_map = {}
        for standard_name, possible_names in mapping.items():
            lowered = [name.lower() for name in possible_names]
            for col in df.columns:
                if col.lower() in lowered and col not in column_map:
                    column_map[col] = standard_name
                    break
        df = df.rename(columns=column_map)

        missing = required - set(column_map.values())
        if missing:
            self.errors.append({'row': 0, 'message': 'Missing required columns: ' + ', '.join(sorted(missing))})
        return df

    # =========================================================================
    # ROWS
    # =========================================================================

    def _process_dataframe(self, df: pd.DataFrame, kind: str) -> None:
        from statements.models import Listing

        listings = set(Listing.objects.values_list('id', flat=True))
        process = self._process_reservation if kind == 'reservations' else self._process_expense

        for i, (_, row) in enumerate(df.iterrows()):
            row_num = i + 2
            self.stats['rows_total'] += 1
            try:
                created = process(row, listings)
                self.stats['rows_created' if created else 'rows_updated'] += 1
            except ValueError as e:
                self.errors.append({'row': row_num, 'message': str(e)})
                self.stats['rows_skipped'] += 1

    def _listing_id(self, row: pd.Series, listings: set) -> int:
        listing_id = self._parse_int(row.get('listing_id'))
        if listing_id not in listings:
            raise ValueError(f"Unknown listing {row.get('listing_id')}")
        return listing_id

    def _process_reservation(self, row: pd.Series, listings: set) -> bool:
        from statements.models import ChannelReservation

        external_id = self._parse_str(row.get('external_id'))
        if not external_id:
            raise ValueError('Missing reservation id')
        check_in = self._parse_date(row.get('check_in_date'))
        check_out = self._parse_date(row.get('check_out_date'))
        if check_in is None or check_out is None:
            raise ValueError('Missing or invalid stay dates')
        if check_in > check_out:
            raise ValueError('Check-in is after check-out')

        values = {
            'listing_id': self._listing_id(row, listings),
            'guest_name': self._parse_str(row.get('guest_name')) or 'Guest',
            'check_in_date': check_in,
            'check_out_date': check_out,
            'nights': self._parse_int(row.get('nights'), default=(check_out - check_in).days),
            'source': self._parse_str(row.get('source')),
            'status': self._map_status(row.get('status')),
            'gross_amount': self._parse_decimal(row.get('gross_amount')),
            'base_rate': self._parse_decimal(row.get('base_rate')),
            'cleaning_and_other_fees': self._parse_decimal(row.get('cleaning_and_other_fees')),
            'platform_fees': self._parse_decimal(row.get('platform_fees')),
            'client_revenue': self._parse_decimal(row.get('client_revenue')),
            'client_tax_responsibility': self._parse_decimal(row.get('client_tax_responsibility')),
            'cleaning_fee': self._parse_optional_decimal(row.get('cleaning_fee')),
            'booked_at': self._parse_date(row.get('booked_at')),
            'raw_data': {str(k): str(v) for k, v in row.items() if pd.notna(v)},
        }
        values['has_detailed_finance'] = any(
            field in row.index and pd.notna(row.get(field)) for field in self.FINANCE_FIELDS
        )

        _, created = ChannelReservation.objects.update_or_create(external_id=external_id, defaults=values)
        return created

    def _process_expense(self, row: pd.Series, listings: set) -> bool:
        from statements.models import ExpenseRecord

        external_id = self._parse_str(row.get('external_id'))
        if not external_id:
            raise ValueError('Missing expense id')
        expense_date = self._parse_date(row.get('date'))
        if expense_date is None:
            raise ValueError('Missing or invalid date')

        amount = self._parse_decimal(row.get('amount'))
        kind = self._parse_str(row.get('type')).lower()
        values = {
            'listing_id': self._listing_id(row, listings),
            'date': expense_date,
            'description': self._parse_str(row.get('description')),
            'category': self._parse_str(row.get('category')),
            'vendor': self._parse_str(row.get('vendor')),
            'amount': abs(amount),
            'type': 'upsell' if kind == 'upsell' else 'expense',
        }
        _, created = ExpenseRecord.objects.update_or_create(external_id=external_id, defaults=values)
        return created

    # =========================================================================
    # PARSING
    # =========================================================================

    def _map_status(self, status_str) -> str:
        status_str = self._parse_str(status_str).lower()
        for status_choice, variations in self.STATUS_MAPPING.items():
            if status_str in variations:
                return status_choice
        return 'confirmed'

    def _parse_str(self, value) -> str:
        if value is None or pd.isna(value):
            return ''
        return str(value).strip()

    def _parse_date(self, value) -> Optional[date]:
        if value is None or pd.isna(value):
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        value = str(value).strip()
        if not value or value == '-':
            return None
        try:
            return date_parser.parse(value).date()
        except (ValueError, OverflowError):
            return None

    def _parse_int(self, value, default: int = 0) -> int:
        if value is None or pd.isna(value):
            return default
        try:
            return int(float(str(value).strip()))
        except (ValueError, TypeError):
            return default

    def _parse_decimal(self, value, default: Decimal = None) -> Decimal:
        if default is None:
            default = Decimal('0.00')
        if value is None or pd.isna(value):
            return default
        value_str = str(value).strip().replace('$', '').replace(',', '')
        if not value_str or value_str == '-':
            return default
        try:
            return Decimal(value_str).quantize(Decimal('0.01'))
        except InvalidOperation:
            raise ValueError(f"Invalid amount: {value}")

    def _parse_optional_decimal(self, value) -> Optional[Decimal]:
        if value is None or pd.isna(value) or str(value).strip() in ('', '-'):
            return None
        return self._parse_decimal(value)

    def _build_result(self) -> Dict:
        total = self.stats['rows_total']
        imported = self.stats['rows_created'] + self.stats['rows_updated']
        return {
            'success': not any(e['row'] == 0 for e in self.errors),
            **self.stats,
            'success_rate': (imported / total * 100) if total else 0.0,
            'errors': self.errors,
        }
