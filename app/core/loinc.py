from __future__ import annotations

from types import MappingProxyType
from typing import Literal

from app.models.vitals import Channel

SYSTOLIC_CODE = "8480-6"
DIASTOLIC_CODE = "8462-4"

VITAL_CODES = MappingProxyType(
    {
        "8867-4": Channel.HR,
        "2708-6": Channel.SPO2,
        "8310-5": Channel.TEMP,
        "9279-1": Channel.RR,
        "85354-9": Channel.BP,
        SYSTOLIC_CODE: Channel.BP,
        DIASTOLIC_CODE: Channel.BP,
    }
)

BP_COMPONENT_CODES: MappingProxyType[str, Literal["systolic", "diastolic"]] = (
    MappingProxyType({SYSTOLIC_CODE: "systolic", DIASTOLIC_CODE: "diastolic"})
)


def resolve_channel(code: str | None) -> Channel | None:
    """LOINC 코드를 생체신호 채널로 변환

    Args:
        code: LOINC 코드

    Returns:
        채널 또는 None(미등록 코드)
    """
    if not code:
        return None
    return VITAL_CODES.get(code.strip())
