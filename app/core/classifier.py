from __future__ import annotations

from types import MappingProxyType
from typing import Literal, NamedTuple

from app.models.vitals import Channel, StatusTier

CRITICAL_LOW_FACTOR = 0.9
CRITICAL_HIGH_FACTOR = 1.1


class ReferenceRange(NamedTuple):
    """채널별 정상 범위"""

    low: float
    high: float


REFERENCE_RANGES = MappingProxyType(
    {
        Channel.HR: ReferenceRange(60, 100),
        Channel.SPO2: ReferenceRange(95, 100),
        Channel.TEMP: ReferenceRange(36.5, 37.5),
        Channel.RR: ReferenceRange(12, 20),
    }
)

BloodPressureCategory = Literal["normal", "elevated"]


def classify(value: float, low: float, high: float) -> StatusTier:
    """값을 정상 범위 기준으로 분류

    범위 안이면 정상, 경계에서 10% 넘게 벗어나면 위험, 그 사이는 주의.

    Args:
        value: 측정값
        low: 정상 하한
        high: 정상 상한

    Returns:
        상태 등급
    """
    if low <= value <= high:
        return StatusTier.NORMAL
    if value < low * CRITICAL_LOW_FACTOR or value > high * CRITICAL_HIGH_FACTOR:
        return StatusTier.CRITICAL
    return StatusTier.WARNING


def classify_channel(channel: Channel, value: float) -> StatusTier:
    """채널의 정상 범위로 값을 분류

    Args:
        channel: 스칼라 채널
        value: 측정값

    Returns:
        상태 등급

    Raises:
        KeyError: 정상 범위가 없는 채널(bp)인 경우
    """
    reference = REFERENCE_RANGES[channel]
    return classify(float(value), reference.low, reference.high)


def classify_blood_pressure(systolic: float, diastolic: float) -> BloodPressureCategory:
    """혈압 분류(수축기 120 미만, 이완기 80 미만이면 정상)"""
    if systolic < 120 and diastolic < 80:
        return "normal"
    return "elevated"
