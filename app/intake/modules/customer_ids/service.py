"""
CUSTOMER ID ISSUANCE
====================

The sequencer is pure; this module owns the only state it depends on: the
append-only ``customer_id_log`` table.

    last = get_last_customer_id(s)        # read
    nxt = next_customer_id(last)          # compute
    record_issued_customer_id(s, nxt)     # write

The log only moves forward: an ID typed by hand is appended only when it
sorts after the current last entry (``record_submitted_customer_id``), so a
back-dated or re-keyed ID never rewinds the pre-filled value.

The three steps are NOT atomic. Two writers that read the same ``last`` both
compute the same ``nxt``. The UNIQUE constraint on
``customer_id_log.customer_id`` turns that race into an IntegrityError, which
is surfaced here as DuplicateCustomerIdError.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from app.intake.audit import record_event
from app.intake.modules.customer_ids.models import CustomerIdLogEntry
from app.intake.modules.customer_ids.sequencer import (
    MalformedCustomerIdError,
    next_customer_id,
    parse_customer_id,
    validate_customer_id,
)
from app.intake.modules.site_visits.models import SiteVisit

logger = logging.getLogger(__name__)


class DuplicateCustomerIdError(RuntimeError):
    def __init__(self, customer_id: str):
        super().__init__(f"Customer ID already issued: {customer_id}")
        self.customer_id = customer_id


def get_last_customer_id(s) -> str | None:
    row = s.query(CustomerIdLogEntry).order_by(CustomerIdLogEntry.id.desc()).first()
    return row.customer_id if row else None


def is_customer_id_issued(s, customer_id: str) -> bool:
    return (
        s.query(CustomerIdLogEntry.id).filter(CustomerIdLogEntry.customer_id == customer_id).first()
        is not None
    )


def is_customer_id_taken(s, customer_id: str) -> bool:
    """True when the ID is in the log or already keys a site visit."""
    if is_customer_id_issued(s, customer_id):
        return True
    return s.query(SiteVisit.id).filter(SiteVisit.customer_id == customer_id).first() is not None


def sorts_after(customer_id: str, last: str | None) -> bool:
    if last is None:
        return True
    return parse_customer_id(customer_id).sort_key() > parse_customer_id(last).sort_key()


def peek_next_customer_id(s) -> str:
    """
    Next ID for pre-filling a form. Nothing is written.

    Steps past candidates that are already taken so the suggestion can
    always be submitted.
    """
    candidate = next_customer_id(get_last_customer_id(s))
    while is_customer_id_taken(s, candidate):
        candidate = next_customer_id(candidate)
    return candidate


def record_issued_customer_id(s, customer_id: str, *, source: str | None = None) -> CustomerIdLogEntry:
    """
    Append ``customer_id`` to the issuance log.

    Raises MalformedCustomerIdError for IDs that fail validation and
    DuplicateCustomerIdError when the ID is already in the log.
    """
    if not validate_customer_id(customer_id):
        raise MalformedCustomerIdError(f"Malformed customer ID: {customer_id!r}")
    try:
        with s.begin_nested():  # SAVEPOINT so the outer transaction survives a duplicate
            entry = CustomerIdLogEntry(customer_id=customer_id, source=source)
            s.add(entry)
            s.flush()
    except IntegrityError as e:
        raise DuplicateCustomerIdError(customer_id) from e
    record_event(
        s,
        action="customer_id.issue",
        entity_type="CustomerIdLogEntry",
        entity_id=customer_id,
        metadata={"source": source} if source else None,
    )
    return entry


def record_submitted_customer_id(s, customer_id: str, *, source: str | None = None) -> bool:
    """
    Append an ID that came from outside the sequencer (a form, a seed).

    Only IDs that sort after the current last entry are appended; anything
    else leaves the log untouched. Returns True when a row was written.
    """
    last = get_last_customer_id(s)
    if not sorts_after(customer_id, last):
        logger.info("Customer ID %s not after last issued %s; log unchanged", customer_id, last)
        return False
    record_issued_customer_id(s, customer_id, source=source)
    return True


def issue_next_customer_id(s, *, source: str | None = None, retries: int = 1) -> str:
    """
    Read the last issued ID, compute the next one and append it to the log.

    A concurrent writer that got there first shows up as a duplicate; the
    read is repeated up to ``retries`` times before giving up.
    """
    attempt = 0
    while True:
        candidate = peek_next_customer_id(s)
        try:
            record_issued_customer_id(s, candidate, source=source)
            return candidate
        except DuplicateCustomerIdError:
            if attempt >= retries:
                raise
            attempt += 1
            logger.warning("Customer ID %s taken by a concurrent writer; re-reading log (attempt %s)", candidate, attempt)
