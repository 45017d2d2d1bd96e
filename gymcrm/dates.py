import calendar
from datetime import date, datetime


def add_months(start, months):
    """
    Add calendar months, clamping the day to the end of the target month
    (Jan 31 + 1 month => Feb 28/29). Works for both dates and datetimes.
    """
    index = start.month - 1 + int(months)
    year = start.year + index // 12
    month = index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)


def as_date(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        return date.fromisoformat(value.strip().split('T')[0])
    return None
