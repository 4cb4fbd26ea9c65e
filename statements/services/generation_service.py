"""
Statement Generation Service
============================

Creates statements from data-source fetches.

Flow:
1. Validate the period (start <= end, known calculation type)
2. Resolve listing rules (single: strict, combined: lenient)
3. Fetch reservations and expenses (worker threads for several listings)
4. Assemble line items, totals and warnings in the calling thread
5. Persist

Bulk generation runs fetches in bounded batches, isolates per-listing
failures, skips listings that already have a draft for the period and
saves every computed statement sequentially after all computation.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from statements.conf import get_setting
from statements.domain import CALCULATION_TYPES, CHECKOUT, to_date
from statements.exceptions import InvalidPeriodError, StatementValidationError
from statements.services.assembly_service import StatementAssembler
from statements.services.rules import RuleResolver

logger = logging.getLogger(__name__)


@dataclass
class PropertyFetch:
    """Raw data of one listing for one period."""
    property_id: int
    reservations: list = field(default_factory=list)
    expenses: list = field(default_factory=list)
    duplicate_warnings: list = field(default_factory=list)


def display_names(names):
    """
    Full and short display names for a list of listing names.

    Returns:
        tuple: (full, short); short is "A, B +N more" beyond three names
    """
    full = ', '.join(names)
    if len(names) <= 3:
        return full, full
    return full, f"{', '.join(names[:2])} +{len(names) - 2} more"


def build_internal_notes(rules_by_property, property_ids):
    notes = [
        (rules_by_property[pid].name, (rules_by_property[pid].internal_notes or '').strip())
        for pid in property_ids if pid in rules_by_property
    ]
    notes = [(name, note) for name, note in notes if note]
    if len(property_ids) == 1:
        return notes[0][1] if notes else ''
    return '\n\n'.join(f"[{name}]: {note}" for name, note in notes)


def bulk_property_ids(tag=None):
    """Active listing ids, optionally restricted to a tag."""
    from statements.models import Listing

    if tag:
        return sorted(listing.id for listing in Listing.with_tag(tag))
    return list(Listing.objects.filter(is_active=True).order_by('id').values_list('id', flat=True))


class StatementGenerationService:
    """
    Usage:
        service = StatementGenerationService(DatabaseDataSource())
        statement = service.generate(42, date(2025, 6, 1), date(2025, 6, 30))
        combined = service.generate_combined([42, 43], date(2025, 6, 1), date(2025, 6, 30))
        result = service.generate_bulk([42, 43, 44], date(2025, 6, 1), date(2025, 6, 30), job=job)
    """

    def __init__(self, data_source, resolver=None, assembler=None, max_workers=None):
        """
        Args:
            data_source: StatementDataSource
            resolver: RuleResolver (defaults to one over data_source.get_listing_config)
            assembler: StatementAssembler
            max_workers: fetch threads per batch (defaults to STATEMENTS['BULK_BATCH_SIZE'])
        """
        self.data_source = data_source
        self.resolver = resolver or RuleResolver(data_source.get_listing_config)
        self.assembler = assembler or StatementAssembler()
        self.max_workers = max_workers or get_setting('BULK_BATCH_SIZE')

    # =========================================================================
    # VALIDATION
    # =========================================================================

    @staticmethod
    def validate_period(start_date, end_date, calculation_type=CHECKOUT):
        """
        Returns:
            tuple: (start_date, end_date) as dates

        Raises:
            InvalidPeriodError, StatementValidationError
        """
        try:
            start = to_date(start_date)
            end = to_date(end_date)
        except ValueError as exc:
            raise InvalidPeriodError(str(exc))
        if start is None or end is None:
            raise InvalidPeriodError("Start and end dates are required")
        if start > end:
            raise InvalidPeriodError(f"Start date {start} is after end date {end}")
        if calculation_type not in CALCULATION_TYPES:
            raise StatementValidationError(f"Unknown calculation type: {calculation_type}")
        return start, end

    @staticmethod
    def _normalize_ids(property_ids):
        try:
            ids = sorted({int(pid) for pid in property_ids})
        except (TypeError, ValueError):
            raise StatementValidationError(f"Invalid property ids: {property_ids!r}")
        if not ids:
            raise StatementValidationError("At least one property id is required")
        return ids

    # =========================================================================
    # FETCHING
    # =========================================================================

    def _fetch(self, property_id, start_date, end_date, calculation_type):
        reservations = self.data_source.get_reservations(start_date, end_date, property_id, calculation_type)
        expense_fetch = self.data_source.get_expenses(start_date, end_date, property_id)
        return PropertyFetch(
            property_id=property_id,
            reservations=list(reservations),
            expenses=list(expense_fetch.expenses),
            duplicate_warnings=list(expense_fetch.duplicate_warnings),
        )

    def _fetch_in_worker(self, property_id, start_date, end_date, calculation_type):
        try:
            return self._fetch(property_id, start_date, end_date, calculation_type)
        finally:
            self.data_source.close()

    def _fetch_parallel(self, property_ids, start_date, end_date, calculation_type):
        """
        Fetch several listings concurrently.

        Returns:
            dict: {property_id: PropertyFetch or Exception}
        """
        if len(property_ids) == 1:
            pid = property_ids[0]
            try:
                return {pid: self._fetch(pid, start_date, end_date, calculation_type)}
            except Exception as exc:
                return {pid: exc}

        results = {}
        workers = min(len(property_ids), self.max_workers)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                pid: executor.submit(self._fetch_in_worker, pid, start_date, end_date, calculation_type)
                for pid in property_ids
            }
            for pid, future in futures.items():
                try:
                    results[pid] = future.result()
                except Exception as exc:
                    results[pid] = exc
        return results

    # =========================================================================
    # COMPUTATION
    # =========================================================================

    def compute(self, property_ids, start_date, end_date, calculation_type, rules_by_property, fetches):
        """
        Assemble an unsaved Statement from fetched data.

        Args:
            property_ids: sorted listing ids
            fetches: list of PropertyFetch, in property-id order
        """
        from statements.models import Statement

        reservations = []
        expenses = []
        duplicate_warnings = []
        for fetch in fetches:
            reservations.extend(fetch.reservations)
            expenses.extend(fetch.expenses)
            duplicate_warnings.extend(fetch.duplicate_warnings)

        assembled = self.assembler.assemble(
            reservations=reservations,
            expenses=expenses,
            rules_by_property=rules_by_property,
            property_ids=property_ids,
            period_start=start_date,
            period_end=end_date,
            calculation_type=calculation_type,
        )

        names = [rules_by_property[pid].name or f"Property {pid}" for pid in property_ids]
        full_names, short_names = display_names(names)
        is_combined = len(property_ids) > 1

        statement = Statement(
            property_id=None if is_combined else property_ids[0],
            property_ids=list(property_ids),
            property_name=short_names,
            property_names=full_names,
            is_combined_statement=is_combined,
            week_start_date=start_date,
            week_end_date=end_date,
            calculation_type=calculation_type,
            status=Statement.STATUS_DRAFT,
            cleaning_mismatch_warning=assembled.cleaning_mismatch_warning,
            should_convert_to_calendar=assembled.should_convert_to_calendar,
            overlapping_reservations=assembled.overlapping_reservations,
            duplicate_warnings=duplicate_warnings,
            internal_notes=build_internal_notes(rules_by_property, property_ids),
            listing_settings_snapshot={
                str(pid): rules_by_property[pid].snapshot() for pid in property_ids
            },
        )
        statement.set_reservations(assembled.reservations)
        statement.set_items(assembled.items)
        statement.apply_totals(assembled.totals)
        return statement

    # =========================================================================
    # GENERATION
    # =========================================================================

    def generate(self, property_id, start_date, end_date, calculation_type=CHECKOUT, save=True):
        """
        Single-listing statement. An unknown listing raises ListingNotFoundError.
        """
        start, end = self.validate_period(start_date, end_date, calculation_type)
        property_id = self._normalize_ids([property_id])[0]

        rules = self.resolver.resolve(property_id, end, strict=True)
        fetch = self._fetch(property_id, start, end, calculation_type)
        statement = self.compute([property_id], start, end, calculation_type, {property_id: rules}, [fetch])

        if save:
            statement.save()
            logger.info(
                "Generated statement %s for listing %s (%s to %s): owner payout %s",
                statement.pk, property_id, start, end, statement.owner_payout,
            )
        return statement

    def generate_combined(self, property_ids, start_date, end_date, calculation_type=CHECKOUT, save=True):
        """
        One statement over several listings. Unknown listings get the
        default rules; a failed fetch fails the whole statement.
        """
        start, end = self.validate_period(start_date, end_date, calculation_type)
        property_ids = self._normalize_ids(property_ids)
        if len(property_ids) == 1:
            return self.generate(property_ids[0], start, end, calculation_type, save=save)

        rules_by_property = self.resolver.resolve_many(property_ids, end)
        results = self._fetch_parallel(property_ids, start, end, calculation_type)
        for pid in property_ids:
            if isinstance(results[pid], Exception):
                raise results[pid]

        statement = self.compute(
            property_ids, start, end, calculation_type, rules_by_property,
            [results[pid] for pid in property_ids],
        )
        if save:
            statement.save()
            logger.info(
                "Generated combined statement %s for %d listings (%s to %s): owner payout %s",
                statement.pk, len(property_ids), start, end, statement.owner_payout,
            )
        return statement

    @staticmethod
    def find_existing_draft(property_id, start_date, end_date, calculation_type=CHECKOUT):
        """Draft of the same listing, period and calculation type, if any."""
        from statements.models import Statement

        return Statement.objects.filter(
            property_id=property_id,
            is_combined_statement=False,
            week_start_date=start_date,
            week_end_date=end_date,
            calculation_type=calculation_type,
            status=Statement.STATUS_DRAFT,
        ).first()

    def generate_bulk(self, property_ids, start_date, end_date, calculation_type=CHECKOUT,
                      job=None, batch_size=None):
        """
        One statement per listing.

        Args:
            property_ids: listing ids
            job: optional GenerationJob receiving progress checkpoints
            batch_size: listings fetched concurrently per batch

        Returns:
            dict: generated (statement ids), skipped, errors, counts
        """
        start, end = self.validate_period(start_date, end_date, calculation_type)
        property_ids = self._normalize_ids(property_ids)
        batch_size = batch_size or self.max_workers

        generated = []
        skipped = []
        errors = []
        computed = []

        def record_error(pid, exc):
            errors.append({'property_id': pid, 'message': str(exc)})
            if job is not None:
                job.add_error(pid, exc)

        if job is not None:
            job.start(len(property_ids))

        try:
            progress = 0
            for offset in range(0, len(property_ids), batch_size):
                batch = property_ids[offset:offset + batch_size]

                pending = []
                for pid in batch:
                    existing = self.find_existing_draft(pid, start, end, calculation_type)
                    if existing is not None:
                        skipped.append({'property_id': pid, 'statement_id': existing.pk,
                                        'reason': 'draft already exists'})
                    else:
                        pending.append(pid)

                fetched = self._fetch_parallel(pending, start, end, calculation_type) if pending else {}

                for pid in pending:
                    result = fetched[pid]
                    if isinstance(result, Exception):
                        logger.error("Fetch failed for listing %s: %s", pid, result)
                        record_error(pid, result)
                        continue
                    try:
                        rules = self.resolver.resolve(pid, end, strict=True)
                        computed.append(self.compute([pid], start, end, calculation_type, {pid: rules}, [result]))
                    except Exception as exc:
                        logger.exception("Statement generation failed for listing %s", pid)
                        record_error(pid, exc)

                progress += len(batch)
                if job is not None:
                    job.checkpoint(progress)

            for statement in computed:
                try:
                    statement.save()
                    generated.append(statement.pk)
                except Exception as exc:
                    logger.exception("Saving statement for listing %s failed", statement.property_id)
                    record_error(statement.property_id, exc)

            result = {
                'generated': generated,
                'skipped': skipped,
                'errors': errors,
                'summary': {
                    'total': len(property_ids),
                    'generated': len(generated),
                    'skipped': len(skipped),
                    'errors': len(errors),
                },
            }
            logger.info(
                "Bulk generation %s to %s: %d generated, %d skipped, %d errors",
                start, end, len(generated), len(skipped), len(errors),
            )
            if job is not None:
                job.complete(result)
            return result
        except Exception as exc:
            if job is not None:
                job.fail(exc)
            raise

    # =========================================================================
    # BACKGROUND JOBS
    # =========================================================================

    def start_bulk_job(self, job, property_ids, start_date, end_date, calculation_type=CHECKOUT):
        """
        Run generate_bulk for a queued job on a background thread.

        The caller polls the job record for progress checkpoints.

        Returns:
            threading.Thread (already started)
        """
        thread = threading.Thread(
            target=self._run_bulk_job,
            args=(job.pk, property_ids, start_date, end_date, calculation_type),
            name=f"statement-bulk-{job.pk}",
            daemon=True,
        )
        thread.start()
        logger.info("Started bulk generation job %s for %d listings", job.pk, len(property_ids))
        return thread

    def _run_bulk_job(self, job_id, property_ids, start_date, end_date, calculation_type):
        from statements.models import GenerationJob

        try:
            job = GenerationJob.objects.get(pk=job_id)
            self.generate_bulk(property_ids, start_date, end_date, calculation_type, job=job)
        except Exception:
            logger.exception("Bulk generation job %s failed", job_id)
        finally:
            self.data_source.close()
