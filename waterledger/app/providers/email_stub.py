"""Stub email provider used for development and tests.

Messages are logged and kept in :data:`outbox` instead of being sent.
"""

import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

outbox: List[Dict[str, Any]] = []


def send(event: str, payload: Dict[str, Any], target: Optional[str]) -> None:
    subject = payload.get("subject", "")
    outbox.append({"event": event, "target": target, **payload})
    logger.info("email %s to %s: %s", event, target, subject)
