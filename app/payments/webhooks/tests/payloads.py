"""Stripe event payload builders for webhook tests."""

import itertools

_event_ids = itertools.count(1)


def make_event(event_type: str, obj: dict, event_id: str | None = None) -> dict:
    """Build a verified Stripe event dict."""
    return {
        "id": event_id or f"evt_built_{next(_event_ids)}",
        "object": "event",
        "type": event_type,
        "data": {"object": obj},
    }
