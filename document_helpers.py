"""
Formatting helpers shared by the receipt and admit card composers.
Each helper degrades to a display fallback instead of raising.
"""

import re
import base64
import binascii
import logging
from datetime import datetime
from typing import Any, Optional

from dateutil import tz

from fee_models import parse_datetime, to_amount

logger = logging.getLogger(__name__)

NOT_AVAILABLE = 'N/A'
DEFAULT_CURRENCY_SYMBOL = '₹'
DEFAULT_DISPLAY_TIMEZONE = 'Asia/Kolkata'

MONTH_ABBREVIATIONS = ('Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
                       'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec')

_DATA_URI = re.compile(r'^data:image/(jpeg|jpg|png);base64,(.+)$', re.IGNORECASE | re.DOTALL)


def _group_indian(digits: str) -> str:
    """12345678 -> 1,23,45,678"""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ','.join(groups + [tail])


def format_amount(amount: Any) -> str:
    """Indian digit grouping, decimals only when the amount has paise"""
    value = to_amount(amount)
    sign = '-' if value < 0 else ''
    value = abs(round(value, 2))
    whole = int(value)
    paise = int(round((value - whole) * 100))
    if paise == 100:
        whole, paise = whole + 1, 0
    text = _group_indian(str(whole))
    if paise:
        text = f"{text}.{paise:02d}"
    return f"{sign}{text}"


def format_currency(amount: Any, symbol: str = DEFAULT_CURRENCY_SYMBOL) -> str:
    return f"{symbol}{format_amount(amount)}"


def format_datetime(value: Any, timezone: str = DEFAULT_DISPLAY_TIMEZONE) -> str:
    """
    '19 Oct 2026, 02:30 PM', or N/A when the value is missing or unparseable.

    Timestamps carrying an offset (the backend sends UTC) are shown in the given
    timezone; naive ones are shown as they are. Month names and AM/PM do not
    depend on the process locale.
    """
    parsed = value if isinstance(value, datetime) else parse_datetime(value)
    if parsed is None:
        return NOT_AVAILABLE
    zone = tz.gettz(timezone) if timezone else None
    if parsed.tzinfo is not None and zone is not None:
        parsed = parsed.astimezone(zone)
    hour = parsed.hour % 12 or 12
    meridiem = 'AM' if parsed.hour < 12 else 'PM'
    return (f"{parsed.day} {MONTH_ABBREVIATIONS[parsed.month - 1]} {parsed.year}, "
            f"{hour:02d}:{parsed.minute:02d} {meridiem}")


def decode_inline_image(value: Any) -> Optional[bytes]:
    """Image bytes from a base64 JPEG/PNG data URI, None for anything else"""
    if not isinstance(value, str):
        return None
    match = _DATA_URI.match(value.strip())
    if not match:
        return None
    try:
        return base64.b64decode(match.group(2), validate=True)
    except (binascii.Error, ValueError):
        logger.warning("Student photo is not valid base64 data")
        return None


def display(value: Any, fallback: str = NOT_AVAILABLE) -> str:
    """Receipt field value, with a literal fallback for missing data"""
    if value is None:
        return fallback
    text = str(value).strip()
    return text if text else fallback


def as_text(value: Any) -> str:
    """Admit card field value: always a string, empty when missing"""
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def short_id(value: Any, length: int = 8) -> Optional[str]:
    if not value:
        return None
    return str(value)[-length:]
