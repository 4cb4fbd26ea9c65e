"""
Cancelled-reservation count cache.

Counts are expensive (one channel fetch per property and period) and are
shown on every statement list, so they are cached with a TTL. The cache is
an explicit collaborator: pass ``NullCountCache()`` to disable it.

Key scheme:
    statements:cancelled:<property_id>:g<generation>:<start>:<end>

Bumping a property's generation invalidates all of its periods at once.
"""

from django.core.cache import caches

from statements.conf import get_setting


class CancelledCountCache:

    KEY_PREFIX = 'statements:cancelled'

    def __init__(self, backend=None, ttl=None):
        """
        Args:
            backend: Django cache backend (defaults to caches['default'])
            ttl: seconds (defaults to STATEMENTS['CANCELLED_COUNT_TTL'])
        """
        self.backend = backend if backend is not None else caches['default']
        self.ttl = ttl if ttl is not None else get_setting('CANCELLED_COUNT_TTL')

    def _generation_key(self, property_id):
        return f"{self.KEY_PREFIX}:{property_id}:generation"

    def _generation(self, property_id):
        return self.backend.get(self._generation_key(property_id), 0)

    def key(self, property_id, start_date, end_date):
        return (
            f"{self.KEY_PREFIX}:{property_id}:g{self._generation(property_id)}:"
            f"{start_date.isoformat()}:{end_date.isoformat()}"
        )

    def get(self, property_id, start_date, end_date):
        return self.backend.get(self.key(property_id, start_date, end_date))

    def set(self, property_id, start_date, end_date, count):
        self.backend.set(self.key(property_id, start_date, end_date), count, self.ttl)

    def invalidate_property(self, property_id):
        self.backend.set(self._generation_key(property_id), self._generation(property_id) + 1, None)


class NullCountCache:
    """Cache that never remembers anything."""

    def get(self, property_id, start_date, end_date):
        return None

    def set(self, property_id, start_date, end_date, count):
        pass

    def invalidate_property(self, property_id):
        pass
