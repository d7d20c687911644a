from __future__ import annotations

import math
from datetime import date, datetime, timezone
from typing import Iterable

PARTIAL_DATE_FORMATS = ["%Y-%m-%d", "%Y-%m", "%Y"]


def coerce_float(value: object) -> float | None:
    """값을 실수로 변환

    Args:
        value: 원본 값

    Returns:
        실수 값 또는 None(변환 불가, NaN, 무한대)
    """
    if value is None or isinstance(value, bool):
        return None
    text = value if isinstance(value, (int, float)) else str(value).strip()
    if text == "":
        return None
    try:
        number = float(text)
    except (ValueError, OverflowError):
        return None
    if not math.isfinite(number):
        return None
    return number


def coerce_text(value: object) -> str | None:
    """값을 공백 제거한 문자열로 변환

    Args:
        value: 원본 값

    Returns:
        문자열 또는 None(빈 값)
    """
    if value is None:
        return None
    text = str(value).strip()
    if text == "":
        return None
    return text


def parse_date_optional(
    value: object, formats: Iterable[str] = PARTIAL_DATE_FORMATS
) -> date | None:
    """FHIR date 값을 날짜로 파싱

    연도만 있거나 연-월만 있는 부분 날짜는 첫째 날로 채운다.

    Args:
        value: 원본 날짜 값
        formats: 허용 포맷 목록

    Returns:
        날짜 또는 None(파싱 실패)
    """
    text = coerce_text(value)
    if text is None:
        return None
    for fmt in formats:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def parse_datetime_optional(value: object) -> datetime | None:
    """FHIR dateTime 값을 UTC 기준 시각으로 파싱

    Args:
        value: 원본 시각 값

    Returns:
        시각 또는 None(파싱 실패)
    """
    text = coerce_text(value)
    if text is None:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        only_date = parse_date_optional(text)
        if only_date is None:
            return None
        parsed = datetime(only_date.year, only_date.month, only_date.day)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
