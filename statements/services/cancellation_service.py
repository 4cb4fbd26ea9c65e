"""
Cancelled reservations for a statement's period.
"""

from statements.services.cache import CancelledCountCache


class CancelledReservationService:
    """
    Usage:
        service = CancelledReservationService(DatabaseDataSource())
        cancelled = service.for_statement(statement)
        count = service.count_for_statement(statement)
    """

    def __init__(self, data_source, cache=None):
        self.data_source = data_source
        self.cache = cache if cache is not None else CancelledCountCache()

    def _fetch(self, property_id, start_date, end_date, calculation_type):
        reservations = self.data_source.get_reservations(start_date, end_date, property_id, calculation_type)
        return [r for r in reservations if r.status == 'cancelled']

    def for_statement(self, statement):
        """
        Cancelled bookings of the statement's listings and period.

        Returns:
            list of dicts (reservation fields + already_in_statement)
        """
        included = {r.get('id') for r in (statement.reservations or [])}
        cancelled = []
        for property_id in statement.statement_property_ids:
            for reservation in self._fetch(
                property_id, statement.week_start_date, statement.week_end_date, statement.calculation_type
            ):
                data = reservation.to_dict()
                data['already_in_statement'] = reservation.id in included
                cancelled.append(data)

        counted = {}
        for data in cancelled:
            counted[data['property_id']] = counted.get(data['property_id'], 0) + 1
        for property_id in statement.statement_property_ids:
            self.cache.set(property_id, statement.week_start_date, statement.week_end_date,
                           counted.get(property_id, 0))
        return cancelled

    def count_for_statement(self, statement):
        total = 0
        for property_id in statement.statement_property_ids:
            count = self.cache.get(property_id, statement.week_start_date, statement.week_end_date)
            if count is None:
                count = len(self._fetch(
                    property_id, statement.week_start_date, statement.week_end_date, statement.calculation_type
                ))
                self.cache.set(property_id, statement.week_start_date, statement.week_end_date, count)
            total += count
        return total
