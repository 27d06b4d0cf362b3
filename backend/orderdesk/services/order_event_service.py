# Overview: Service-layer operations for the order audit trail; encapsulates business logic and database work.

from __future__ import annotations

import json
from typing import Optional

from ..extensions import db
from ..models import Order, OrderEvent
from ..time_utils import utcnow
"""
Order Event Invariants

- Append-only audit log for order lifecycle events.
- No domain/business logic here.
- Events are written inside the same DB transaction as the change they record.
"""


def append_order_event(
    order: Order,
    event_type: str,
    *,
    actor_id: int | None = None,
    payment_id: int | None = None,
    note: Optional[str] = None,
    payload: Optional[dict] = None,
) -> OrderEvent:
    """
    Append-only order event.

    - No deletes/updates of existing events.
    - Caller commits.
    """
    ev = OrderEvent(
        seller_id=order.seller_id,
        order_id=order.id,
        event_type=event_type,
        actor_id=actor_id,
        payment_id=payment_id,
        occurred_at=utcnow(),
        note=note,
        payload=json.dumps(payload, sort_keys=True) if payload is not None else None,
    )
    db.session.add(ev)
    db.session.flush()  # ensures ev.id is assigned without committing
    return ev


def list_order_events(order_id: int) -> list[OrderEvent]:
    return (
        db.session.query(OrderEvent)
        .filter_by(order_id=order_id)
        .order_by(OrderEvent.id.asc())
        .all()
    )
