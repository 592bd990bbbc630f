import logging
from typing import Any, Dict, Optional

from dashboard.services.cache_service import cache_service, INVALIDATION_PATTERNS
from dashboard.services.observability import observability

logger = logging.getLogger("realtime")


def apply_change(table: str, event_type: str, new: Optional[Dict[str, Any]] = None, old: Optional[Dict[str, Any]] = None) -> int:
    """Feed a row-change notification into the cache. Returns keys removed."""
    payload = {"table": table, "eventType": event_type, "new": new, "old": old}
    removed = cache_service.handle_realtime_event(payload)
    if table in INVALIDATION_PATTERNS:
        observability.incr("cache_realtime_invalidation_total")
        observability.record_event("realtime_invalidation", table=table, event_type=event_type, keys_removed=removed)
    else:
        logger.debug("No invalidation patterns for table %s", table)
    return removed
