"""Donation line parsing for the forum donation scraper."""

from __future__ import annotations

import re
from typing import Optional

from .models import CURRENCY, PAYMENT_METHODS, DonationRecord

# ЕРИП    13.01.2025 13:46:08    К.Ю. (лошади сено) 30.00    0.06    29.94    BYN
DONATION_PATTERN = re.compile(
    r"(" + "|".join(re.escape(method) for method in PAYMENT_METHODS) + r")\s+"
    r"(\d{2}\.\d{2}\.\d{4})\s+"
    r"(\d{2}:\d{2}:\d{2})\s+"
    r"(.*?)\s+"
    r"(\d+(?:\.\d*)?)\s+"
    r"(\d+(?:\.\d*)?)\s+"
    r"(\d+(?:\.\d*)?)\s+" + re.escape(CURRENCY)
)

# Amount-like tokens the lazy comment group can leave at its end. Each token
# matches a digit run one way only.
TRAILING_NUMBERS = re.compile(r"(?:^|\s+)\d+(?:\.\d*)?(?:\s+\d+(?:\.\d*)?)*\s*$")


def normalize_whitespace(text: str) -> str:
    return " ".join(text.split())


def clean_comment(raw: str) -> Optional[str]:
    """Strip trailing numeric residue; return None when nothing is left."""

    comment = TRAILING_NUMBERS.sub("", raw.strip()).strip()
    return comment or None


def parse_donation_line(line: str) -> Optional[DonationRecord]:
    """Parse one message line into a :class:`DonationRecord`.

    Returns ``None`` when the line does not have the donation shape. The three
    amounts are taken as matched; ``gross - tax == net`` is not checked.
    """

    match = DONATION_PATTERN.search(normalize_whitespace(line))
    if match is None:
        return None

    payment_method, date, time, comment, gross, tax, net = match.groups()
    record = DonationRecord(
        payment_method=payment_method,
        date=date,
        time=time,
        comment=clean_comment(comment),
        gross_amount=float(gross),
        tax=float(tax),
        net_amount=float(net),
        currency=CURRENCY,
    )
    try:
        record.timestamp
    except ValueError:
        # Not a calendar value (e.g. 31.02.2025); dropped so sorting stays total
        return None
    return record
