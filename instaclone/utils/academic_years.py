"""Academic year labels (YYYY/YY) used for invitation cohorts"""

import re
from datetime import date
from typing import List, Optional

_ACADEMIC_YEAR = re.compile(r"^(\d{4})/(\d{2})$")

# Academic years start in September
ACADEMIC_YEAR_START_MONTH = 9


def current_academic_year_start(today: Optional[date] = None) -> int:
    today = today or date.today()
    return today.year if today.month >= ACADEMIC_YEAR_START_MONTH else today.year - 1


def academic_years(
    start_year: int = 1980,
    end_year: Optional[int] = None,
    limit: int = 10,
    today: Optional[date] = None,
) -> List[str]:
    """Most recent `limit` academic years, newest first: ["2026/27", "2025/26", ...]"""
    last_year = end_year or current_academic_year_start(today)
    first_year = max(start_year, last_year - limit + 1)
    return [f"{year}/{str(year + 1)[-2:]}" for year in range(last_year, first_year - 1, -1)]


def is_academic_year(value: str) -> bool:
    match = _ACADEMIC_YEAR.match(value or "")
    if not match:
        return False
    start, end = int(match.group(1)), match.group(2)
    return str(start + 1)[-2:] == end
