from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

Gender = Literal["male", "female", "other", "unknown"]


class PatientRecord(BaseModel):
    """정규화된 환자 인구통계 정보"""

    model_config = ConfigDict(frozen=True)

    patient_id: str = Field(..., description="FHIR 리소스 식별자")
    name: str | None = Field(default=None, description="표시 이름(given + family)")
    gender: Gender | None = Field(default=None, description="행정상 성별")
    birth_date: date | None = Field(default=None, description="생년월일")
    mrn: str | None = Field(default=None, description="의무기록번호(MR)")

    @computed_field
    @property
    def age(self) -> int | None:
        """생년월일 기준 만 나이"""
        if self.birth_date is None:
            return None
        today = date.today()
        before_birthday = (today.month, today.day) < (
            self.birth_date.month,
            self.birth_date.day,
        )
        return today.year - self.birth_date.year - int(before_birthday)


class _ObservationBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str | None = Field(default=None, description="LOINC 코드")
    display: str | None = Field(default=None, description="표시 텍스트")
    effective: datetime | None = Field(default=None, description="측정 시각")


class ScalarObservation(_ObservationBase):
    """단일 수치 관측값"""

    kind: Literal["scalar"] = "scalar"
    value: float = Field(..., description="측정값")
    unit: str | None = Field(default=None, description="단위")


class PanelObservation(_ObservationBase):
    """혈압 패널 관측값"""

    kind: Literal["panel"] = "panel"
    systolic: float | None = Field(default=None, description="수축기 혈압")
    diastolic: float | None = Field(default=None, description="이완기 혈압")


class UnrecognizedObservation(_ObservationBase):
    """값을 해석할 수 없는 관측값"""

    kind: Literal["unrecognized"] = "unrecognized"


ObservationRecord = Annotated[
    Union[ScalarObservation, PanelObservation, UnrecognizedObservation],
    Field(discriminator="kind"),
]
