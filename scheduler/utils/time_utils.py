"""
Date and time helpers shared by every component that touches schedules

Upstream data arrives from manual entry, spreadsheet imports and raw Excel
serials, so every parser here is total: bad input gives None, never an
exception. Callers treat None as "unknown" and leave the row out of
date-filtered views.
"""

import logging
import math
import re
from datetime import date, datetime, timedelta
from typing import Optional, Tuple, Union

from dateutil import parser as date_parser

from scheduler.config import AMBIGUOUS_DATE_ORDER

logger = logging.getLogger(__name__)

TIME_12H_PATTERN = re.compile(r'^(0?[1-9]|1[0-2]):([0-5][0-9])\s?(AM|PM)$', re.IGNORECASE)
TIME_24H_PATTERN = re.compile(r'^\d{2}:\d{2}$')
ISO_DATE_PATTERN = re.compile(r'^(\d{4})-(\d{2})-(\d{2})$')
SLASH_DATE_PATTERN = re.compile(r'^(\d{1,2})/(\d{1,2})/(\d{4})$')
DATE_TIME_TEXT_PATTERN = re.compile(r'(\w+ \d+, \d{4}) (\d{1,2}:\d{2} [AP]M)')

# Excel day zero (accounts for the 1900 leap year bug)
EXCEL_EPOCH = date(1899, 12, 30)
MONTH_ABBREVIATIONS = ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun', 'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']
# Sentinels that differ in year, month and day
PARSE_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))


def normalize_time_format(time: Optional[str]) -> Optional[str]:
    """
    Strip a single leading zero from the hour: "02:30 PM" -> "2:30 PM".
    Anything else passes through untouched.
    """
    if not time:
        return None
    return re.sub(r'^0(\d)', r'\1', time, count=1)


def format_time_12_hour(hours: int, minutes: int) -> str:
    """Format a 24-hour clock reading as "h:mm AM/PM" without a leading zero"""
    hours = hours % 24
    period = "PM" if hours >= 12 else "AM"
    hour12 = hours % 12 or 12
    return f"{hour12}:{minutes:02d} {period}"


def excel_time_to_readable(value: Union[str, int, float, None]) -> Optional[str]:
    """
    Convert an Excel day fraction (0.375 -> "9:00 AM") to a 12-hour string.
    Strings are assumed to be formatted already and are only normalized.
    """
    if value is None or value == "":
        return None
    
    if isinstance(value, str):
        return normalize_time_format(value)
    
    try:
        fraction = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(fraction):
        return None
    
    total_hours = fraction * 24
    hours = math.floor(total_hours)
    # half-up rounding, matching spreadsheet behaviour
    minutes = math.floor((total_hours - hours) * 60 + 0.5)
    
    if minutes == 60:
        return format_time_12_hour(hours + 1, 0)
    
    return format_time_12_hour(hours, minutes)


def excel_date_to_readable(value: Union[str, int, float, None]) -> Optional[str]:
    """Convert an Excel date serial (45962 -> "Nov 1, 2025"); strings pass through"""
    if value is None or value == "":
        return None
    
    if isinstance(value, str):
        return value
    
    try:
        day = EXCEL_EPOCH + timedelta(days=int(value))
    except (OverflowError, ValueError):
        return None
    return f"{MONTH_ABBREVIATIONS[day.month - 1]} {day.day}, {day.year}"


def is_valid_time_format(time: Optional[str]) -> bool:
    """True for 12-hour strings such as "2:30 PM", "02:30 PM" or "10:00am" """
    if not time:
        return False
    return bool(TIME_12H_PATTERN.match(time))


def is_valid_24_hour_time(time: Optional[str]) -> bool:
    """True for "HH:MM" strings inside 00:00-23:59"""
    if not time or not TIME_24H_PATTERN.match(time):
        return False
    hours, minutes = (int(part) for part in time.split(":"))
    return hours < 24 and minutes < 60


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_appointment_date(
    value: Union[str, date, datetime, int, float, None],
    ambiguous: Optional[str] = None
) -> Optional[date]:
    """
    Parse the free-text appointment dates found on orders.
    
    Accepted shapes:
        - "YYYY-MM-DD"
        - "D/M/YYYY" or "M/D/YYYY": a first part above 12 means day-first,
          a second part above 12 means month-first; when both are <= 12
          the ``ambiguous`` hint ("DMY" or "MDY") decides, defaulting to
          the AMBIGUOUS_DATE_ORDER setting
        - anything dateutil understands, e.g. "Nov 13, 2025"
        - Excel date serials
    
    Returns None for anything unparseable.
    """
    if value is None or value == "":
        return None
    
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return EXCEL_EPOCH + timedelta(days=int(value))
        except (OverflowError, ValueError):
            return None
    if not isinstance(value, str):
        return None
    
    text = value.strip()
    
    iso_match = ISO_DATE_PATTERN.match(text)
    if iso_match:
        year, month, day = (int(part) for part in iso_match.groups())
        return _safe_date(year, month, day)
    
    slash_match = SLASH_DATE_PATTERN.match(text)
    if slash_match:
        first, second, year = (int(part) for part in slash_match.groups())
        if first > 12:
            return _safe_date(year, second, first)
        if second > 12:
            return _safe_date(year, first, second)
        
        order = (ambiguous or AMBIGUOUS_DATE_ORDER).upper()
        logger.debug(f"Ambiguous date '{text}' read as {order}")
        if order == "MDY":
            return _safe_date(year, first, second)
        return _safe_date(year, second, first)
    
    # Components missing from the text come from the default, so two
    # different defaults disagree on partial input such as "12:30"
    try:
        first = date_parser.parse(text, default=PARSE_DEFAULTS[0]).date()
        second = date_parser.parse(text, default=PARSE_DEFAULTS[1]).date()
    except (ValueError, OverflowError):
        return None
    if first != second:
        return None
    return first


def parse_appointment_date_time(value: Optional[str]) -> Tuple[str, str]:
    """Split "Nov 11, 2025 1:00 PM" into ("Nov 11, 2025", "1:00 PM")"""
    if not value:
        return "", ""
    
    match = DATE_TIME_TEXT_PATTERN.search(value)
    if match:
        return match.group(1), match.group(2)
    return value, ""


def format_time_slot(hours: int, minutes: int = 0) -> str:
    """Zero-padded "HH:MM" slot label"""
    return f"{hours:02d}:{minutes:02d}"


def generate_time_slots(start_hour: int, end_hour: int) -> list[str]:
    """
    Half-hour slots from start_hour:00 through end_hour:00 inclusive.
    generate_time_slots(8, 18) -> ["08:00", "08:30", ..., "17:30", "18:00"]
    """
    slots = []
    for hour in range(start_hour, end_hour + 1):
        slots.append(format_time_slot(hour, 0))
        if hour < end_hour:
            slots.append(format_time_slot(hour, 30))
    return slots


def convert_12_to_24_hour(time: Optional[str]) -> Optional[str]:
    """Convert "2:30 PM" to "14:30"; None when the input is not a 12-hour time"""
    if not time:
        return None
    
    match = TIME_12H_PATTERN.match(time.strip())
    if not match:
        return None
    
    hours = int(match.group(1))
    minutes = int(match.group(2))
    period = match.group(3).upper()
    
    if period == "PM" and hours != 12:
        hours += 12
    elif period == "AM" and hours == 12:
        hours = 0
    
    return format_time_slot(hours, minutes)


def convert_24_to_12_hour(time: Optional[str]) -> Optional[str]:
    """Convert "14:30" to "2:30 PM"; None when the input is not a valid HH:MM"""
    if not is_valid_24_hour_time(time):
        return None
    hours, minutes = (int(part) for part in time.split(":"))
    return format_time_12_hour(hours, minutes)


def parse_appointment_time(value: Optional[str]) -> Optional[str]:
    """
    Read an order's free-text appointment time as "HH:MM".
    Tries 12-hour ("10:00 AM", "02:30 pm") first, then 24-hour ("14:30").
    """
    if not value:
        return None
    
    match = re.search(r'(\d{1,2}):(\d{2})\s*(AM|PM)', value, re.IGNORECASE)
    if match:
        hours = int(match.group(1))
        minutes = int(match.group(2))
        if not 1 <= hours <= 12 or minutes > 59:
            return None
        period = match.group(3).upper()
        if period == "PM" and hours != 12:
            hours += 12
        elif period == "AM" and hours == 12:
            hours = 0
        return format_time_slot(hours, minutes)
    
    match = re.search(r'(\d{1,2}):(\d{2})', value)
    if match:
        hours = int(match.group(1))
        minutes = int(match.group(2))
        if hours > 23 or minutes > 59:
            return None
        return format_time_slot(hours, minutes)
    
    return None


def add_hours(time: str, hours: int) -> str:
    """Shift an "HH:MM" time by whole hours, wrapping at midnight"""
    start_hours, minutes = (int(part) for part in time.split(":"))
    return format_time_slot((start_hours + hours) % 24, minutes)
