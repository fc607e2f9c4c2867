"""
Customer ID sequencer.

Customer IDs look like ``A-000a01`` and are read as a mixed-radix counter:

    prefix  block  letter  counter
    A-ZZZ   000    a-z     01-99

Significance is prefix > block > letter > counter. Advancing an ID bumps the
counter and carries left on overflow, the same way an odometer rolls over.

The sequencer holds no state. Callers own the "last issued" value (see
``service.get_last_customer_id``) and pass it in on every call.
"""

from __future__ import annotations

import re
import string
from dataclasses import dataclass

FIRST_CUSTOMER_ID = "A-000a01"

CUSTOMER_ID_RE = re.compile(r"^(?P<prefix>[A-Z]{1,3})-(?P<block>\d{3})(?P<letter>[a-z])(?P<counter>\d{2})$")

_UPPER = string.ascii_uppercase
_LOWER = string.ascii_lowercase

MAX_BLOCK = 999
MAX_COUNTER = 99


class MalformedCustomerIdError(ValueError):
    pass


@dataclass(frozen=True)
class CustomerId:
    prefix: str
    block: int
    letter: str
    counter: int

    def __str__(self) -> str:
        return f"{self.prefix}-{self.block:03d}{self.letter}{self.counter:02d}"

    def sort_key(self) -> tuple[int, str, int, str, int]:
        """Issue order: shorter prefixes first, then segment by segment."""
        return (len(self.prefix), self.prefix, self.block, self.letter, self.counter)

    def successor(self) -> "CustomerId":
        counter = self.counter + 1
        if counter <= MAX_COUNTER:
            return CustomerId(self.prefix, self.block, self.letter, counter)

        # counter rolled over -> letter
        idx = _LOWER.index(self.letter)
        if idx < len(_LOWER) - 1:
            return CustomerId(self.prefix, self.block, _LOWER[idx + 1], 1)

        # letter rolled over -> block
        block = self.block + 1
        if block <= MAX_BLOCK:
            return CustomerId(self.prefix, block, "a", 1)

        # block rolled over -> prefix
        return CustomerId(advance_prefix(self.prefix), 0, "a", 1)


def validate_customer_id(value: object) -> bool:
    """True iff ``value`` is a whole-string match for the customer ID grammar.

    Counter ``00`` passes: the grammar only fixes the digit count, even though
    the sequencer never generates it.
    """
    if not isinstance(value, str):
        return False
    # fullmatch so a trailing newline is not accepted by ``$``
    return CUSTOMER_ID_RE.fullmatch(value) is not None


def parse_customer_id(value: str) -> CustomerId:
    m = CUSTOMER_ID_RE.fullmatch(value) if isinstance(value, str) else None
    if m is None:
        raise MalformedCustomerIdError(f"Malformed customer ID: {value!r}")
    return CustomerId(
        prefix=m.group("prefix"),
        block=int(m.group("block")),
        letter=m.group("letter"),
        counter=int(m.group("counter")),
    )


def advance_prefix(prefix: str) -> str:
    """
    Advance a 1-3 letter prefix as a base-26 odometer, rightmost letter first.

    A one- or two-letter prefix grows by one letter when every position is
    ``Z`` (``Z`` -> ``AA``, ``ZZ`` -> ``AAA``). Three letters is the capacity
    of the scheme: ``ZZZ`` wraps back to ``AAA`` and the carry is dropped.
    """
    if not prefix or len(prefix) > 3 or any(ch not in _UPPER for ch in prefix):
        raise MalformedCustomerIdError(f"Malformed customer ID prefix: {prefix!r}")

    chars = list(prefix)
    for pos in range(len(chars) - 1, -1, -1):
        if chars[pos] != "Z":
            chars[pos] = _UPPER[_UPPER.index(chars[pos]) + 1]
            return "".join(chars)
        chars[pos] = "A"

    # every position was Z
    if len(prefix) < 3:
        return "A" * (len(prefix) + 1)
    return "AAA"


def next_customer_id(previous: str | None) -> str:
    """
    Return the customer ID that follows ``previous``.

    ``None`` or an empty string means nothing has been issued yet and yields
    ``A-000a01``. Anything else must match the grammar; otherwise
    ``MalformedCustomerIdError`` is raised.

    Examples:
        >>> next_customer_id(None)
        'A-000a01'
        >>> next_customer_id("A-000a99")
        'A-000b01'
        >>> next_customer_id("Z-999z99")
        'AA-000a01'
    """
    if not previous:
        return FIRST_CUSTOMER_ID
    return str(parse_customer_id(previous).successor())
