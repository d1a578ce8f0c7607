import logging
from datetime import datetime
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


async def track_event(
    db,
    event_type: str,
    user_id: Optional[str],
    organization_id: Optional[str],
    metadata: Optional[Dict[str, Any]] = None,
) -> None:
    """Record an analytics event. Failures are logged, never raised."""
    try:
        await db["analytics_events"].insert_one(
            {
                "event_type": event_type,
                "user_id": user_id,
                "organization_id": organization_id,
                "metadata": metadata or {},
                "created_at": datetime.utcnow(),
            }
        )
    except Exception as e:
        logger.error(f"Analytics tracking failed for {event_type}: {e}", exc_info=True)
