from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Channel(str, Enum):
    """모니터링 대상 생체신호 채널"""

    HR = "hr"
    SPO2 = "spo2"
    TEMP = "temp"
    RR = "rr"
    BP = "bp"


SCALAR_CHANNELS = (Channel.HR, Channel.SPO2, Channel.TEMP, Channel.RR)


class Provenance(str, Enum):
    """채널 값의 출처"""

    SIMULATED = "simulated"
    SERVER = "server"


class StatusTier(str, Enum):
    """임상 상태 등급"""

    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


class TrendPoint(BaseModel):
    """추세 그래프의 단일 점"""

    model_config = ConfigDict(frozen=True)

    time: str = Field(..., description="표시용 시각 라벨")
    value: float = Field(..., description="측정값")


class ScalarChannel(BaseModel):
    """단일 수치 채널 상태"""

    model_config = ConfigDict(frozen=True)

    value: int | float = Field(..., description="현재 값")
    trend: tuple[TrendPoint, ...] = Field(..., description="최근 추세(슬라이딩 윈도우)")
    source: Provenance = Field(default=Provenance.SIMULATED, description="값 출처")


class BloodPressureChannel(BaseModel):
    """혈압 패널 채널 상태"""

    model_config = ConfigDict(frozen=True)

    systolic: int = Field(..., description="수축기 혈압")
    diastolic: int = Field(..., description="이완기 혈압")
    source: Provenance = Field(default=Provenance.SIMULATED, description="값 출처")


class VitalsSnapshot(BaseModel):
    """다섯 채널 전체의 현재 상태"""

    model_config = ConfigDict(frozen=True)

    hr: ScalarChannel
    spo2: ScalarChannel
    temp: ScalarChannel
    rr: ScalarChannel
    bp: BloodPressureChannel

    def scalar(self, channel: Channel) -> ScalarChannel:
        """스칼라 채널 상태를 반환

        Args:
            channel: 스칼라 채널

        Returns:
            채널 상태

        Raises:
            ValueError: 혈압 채널을 요청한 경우
        """
        if channel is Channel.BP:
            raise ValueError("bp는 스칼라 채널이 아님")
        return getattr(self, channel.value)


class ConnectionStatus(BaseModel):
    """FHIR 서버 연결 상태"""

    model_config = ConfigDict(frozen=True)

    connected: bool = False
    last_sync: datetime | None = None


class ChannelReport(BaseModel):
    """분류 결과가 포함된 스칼라 채널 조회 응답"""

    value: int | float
    display: str
    unit: str
    status: StatusTier
    low: float
    high: float
    source: Provenance
    trend: list[TrendPoint]


class BloodPressureReport(BaseModel):
    """분류 결과가 포함된 혈압 조회 응답"""

    systolic: int
    diastolic: int
    display: str
    unit: str = "mmHg"
    category: str
    source: Provenance


class VitalsReport(BaseModel):
    """생체신호 조회 응답"""

    hr: ChannelReport
    spo2: ChannelReport
    temp: ChannelReport
    rr: ChannelReport
    bp: BloodPressureReport
    has_server_data: bool
    status: ConnectionStatus
