# colorfest_analytics/adapters/dice.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from colorfest_analytics.core.config import settings
from colorfest_analytics.core.models import RawEvent, TicketType

log = logging.getLogger(__name__)

# ----------------------------- GraphQL ---------------------------------

_EVENT_FIELDS = """
          id
          name
          state
          startDatetime
          endDatetime
          ticketTypes {
            id
            name
            price
            totalTicketAllocationQty
          }
          tickets(first: 0) { totalCount }
"""

_EVENTS_QUERY = """
query Events($after: String) {
  viewer {
    events(first: 100, after: $after) {
      totalCount
      pageInfo { endCursor hasNextPage }
      edges {
        node {%s}
      }
    }
  }
}
""" % _EVENT_FIELDS

_EVENT_QUERY = """
query Event($id: ID!) {
  node(id: $id) {
    ... on Event {%s}
  }
}
""" % _EVENT_FIELDS


class DiceApiError(RuntimeError):
    pass


# ----------------------------- Utils -----------------------------------

def _parse_iso(dt: Optional[str]) -> Optional[datetime]:
    if not dt:
        return None
    try:
        return datetime.fromisoformat(dt.replace("Z", "+00:00"))
    except ValueError:
        return None


def _as_int(v: Any) -> Optional[int]:
    if isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    if isinstance(v, str) and v.strip().isdigit():
        return int(v)
    return None

# --------------------------- Fetch layer --------------------------------

def _client(token: Optional[str], transport: Optional[httpx.AsyncBaseTransport]) -> httpx.AsyncClient:
    token = token if token is not None else settings.dice_api_key
    if not token:
        raise DiceApiError("DICE_API_KEY non configurata")
    headers = {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
    }
    return httpx.AsyncClient(headers=headers, timeout=settings.dice_timeout_s, transport=transport)


async def _gql(client: httpx.AsyncClient, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
    try:
        r = await client.post(settings.dice_graphql_url, json={"query": query, "variables": variables})
    except httpx.TimeoutException as e:
        raise DiceApiError(f"DICE API timeout dopo {settings.dice_timeout_s:g}s") from e
    except httpx.HTTPError as e:
        raise DiceApiError(f"DICE API non raggiungibile: {e}") from e
    if r.status_code >= 400:
        raise DiceApiError(f"DICE API error: {r.status_code}")
    try:
        payload = r.json()
    except ValueError as e:
        raise DiceApiError("DICE API: risposta non JSON") from e
    if payload.get("errors"):
        raise DiceApiError(f"DICE GraphQL errors: {payload['errors']}")
    return payload.get("data") or {}


async def fetch_event_nodes(
    token: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[Dict[str, Any]]:
    """All events visible to the partner token, following the cursor."""
    out: List[Dict[str, Any]] = []
    after: Optional[str] = None
    page = 0

    async with _client(token, transport) as client:
        while True:
            page += 1
            data = await _gql(client, _EVENTS_QUERY, {"after": after})
            evs = (data.get("viewer") or {}).get("events") or {}
            edges = evs.get("edges") or []
            out.extend([e["node"] for e in edges if e and e.get("node")])

            page_info = evs.get("pageInfo") or {}
            has_next = page_info.get("hasNextPage", False)
            after = page_info.get("endCursor")
            log.debug("Dice API: page %s, %s events so far", page, len(out))
            if not has_next or not after:
                break

    log.info("Dice API: %s events fetched", len(out))
    return out

# --------------------------- Build layer --------------------------------

def build_raw_event(node: Dict[str, Any]) -> Optional[RawEvent]:
    start = _parse_iso(node.get("startDatetime"))
    if start is None or not node.get("id"):
        log.warning("Dice: event %r without id/startDatetime skipped", node.get("name"))
        return None

    ticket_types = [
        TicketType(
            id=str(tt.get("id") or ""),
            name=(tt.get("name") or "").strip(),
            price=_as_int(tt.get("price")),
            allocated_qty=_as_int(tt.get("totalTicketAllocationQty")),
        )
        for tt in (node.get("ticketTypes") or [])
        if tt
    ]
    tickets = node.get("tickets") or {}

    return RawEvent(
        id=node["id"],
        name=(node.get("name") or "").strip(),
        state=node.get("state"),
        start_datetime=start,
        end_datetime=_parse_iso(node.get("endDatetime")),
        ticket_types=ticket_types,
        tickets_sold=_as_int(tickets.get("totalCount")) or 0,
    )

# ------------------------------ Main ------------------------------------

async def fetch_events(
    token: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[RawEvent]:
    nodes = await fetch_event_nodes(token=token, transport=transport)
    built = [build_raw_event(n) for n in nodes]
    return [e for e in built if e is not None]


async def fetch_event(
    event_id: str,
    token: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[RawEvent]:
    async with _client(token, transport) as client:
        data = await _gql(client, _EVENT_QUERY, {"id": event_id})
    node = data.get("node")
    if not node:
        return None
    return build_raw_event(node)
