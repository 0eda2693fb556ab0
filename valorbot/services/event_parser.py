"""Event report parser.

An event report looks like:

    Event ID: P0001
    Host: <@!123>
    Attendees:
    - <@!456> | 3V
    - <@!789> | DO

Line 1 carries the event id, a `host:` line names the host, and every line after
`attendees:` may be an attendee row. Anything that does not fit is ordinary chat
and parses to None; attendee rows that do not fit are skipped.
"""
from __future__ import annotations
import re
from dataclasses import dataclass
from datetime import datetime

from ..models.ledger import AttendeeDelta, EventRecord

# ---- Grammar -----------------------------------------------------------------

PAT_EVENT_ID = re.compile(r"Event ID:\s*(?P<event_id>(?:P|GT|DT|R)\d{4})(?!\d)", re.A)
PAT_HOST = re.compile(r"^\s*host:\s*<@!?(?P<user_id>\d+)>", re.I | re.A)
PAT_ATTENDEES = re.compile(r"attendees:", re.I)
PAT_ATTENDEE = re.compile(
    r"^-\s*<@!?(?P<user_id>\d+)>.*\|\s*(?P<status>\d*V|INA|DO|AFK)\b",
    re.I | re.A,
)

HOST_VALOR_BONUS = 1


@dataclass
class EventHeader:
    event_id: str
    host: str | None
    attendee_lines: list[str]


@dataclass
class AttendeeRow:
    user_id: str
    status: str  # upper-cased token: "V", "3V", "INA", "DO", "AFK"


def split_lines(body: str) -> list[str]:
    return [ln for ln in (body or "").splitlines() if ln]


def parse_event_id(line: str) -> str | None:
    m = PAT_EVENT_ID.search(line or "")
    return m.group("event_id") if m else None


def parse_host(lines: list[str]) -> str | None:
    # First host: line wins, even if its mention is malformed
    for ln in lines:
        if ln.strip().lower().startswith("host:"):
            m = PAT_HOST.match(ln)
            return m.group("user_id") if m else None
    return None


def parse_header(body: str) -> EventHeader | None:
    lines = split_lines(body)
    if not lines:
        return None
    event_id = parse_event_id(lines[0])
    if event_id is None:
        return None
    idx = next((i for i, ln in enumerate(lines) if PAT_ATTENDEES.search(ln)), None)
    if idx is None:
        return None
    return EventHeader(event_id=event_id, host=parse_host(lines), attendee_lines=lines[idx + 1:])


def parse_attendee_line(line: str) -> AttendeeRow | None:
    m = PAT_ATTENDEE.match(line or "")
    if not m:
        return None
    return AttendeeRow(user_id=m.group("user_id"), status=m.group("status").upper())


def status_delta(status: str) -> AttendeeDelta:
    """Effect of one attendee row. Every row counts as one attended event."""
    delta = AttendeeDelta(events_attended=1)
    status = status.upper()
    if status == "DO":
        delta.valor_change = -1
        delta.do_count = 1
    elif status == "INA":
        delta.ina_count = 1
    elif status == "AFK":
        pass
    elif status == "V":
        delta.valor_change = 1
    elif status.endswith("V"):
        try:
            delta.valor_change = int(status[:-1])
        except ValueError:
            delta.valor_change = 0
    return delta


def extract_event(header: EventHeader, timestamp: datetime | None = None) -> EventRecord:
    deltas: dict[str, AttendeeDelta] = {}
    for ln in header.attendee_lines:
        row = parse_attendee_line(ln)
        if row is None:
            continue
        # A user listed twice keeps the last row
        deltas[row.user_id] = status_delta(row.status)

    if header.host:
        # Host bonus stacks on top of any attendee row the host already has
        d = deltas.setdefault(header.host, AttendeeDelta())
        d.valor_change += HOST_VALOR_BONUS
        d.events_hosted += 1

    return EventRecord(event_id=header.event_id, host=header.host, deltas=deltas, timestamp=timestamp)


def parse_message(body: str, timestamp: datetime | None = None) -> EventRecord | None:
    header = parse_header(body)
    if header is None:
        return None
    return extract_event(header, timestamp)
