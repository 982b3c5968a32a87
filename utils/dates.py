import calendar
from datetime import datetime


def month_range(month=None, year=None):
    """
    First and last instant of a calendar month (defaults to the current one).

    Returns (start, end, month, year). Both bounds are inclusive.
    """
    now = datetime.now()
    month = month or now.month
    year = year or now.year

    last_day = calendar.monthrange(year, month)[1]
    start = datetime(year, month, 1)
    end = datetime(year, month, last_day, 23, 59, 59, 999999)
    return start, end, month, year
