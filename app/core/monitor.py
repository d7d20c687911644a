from __future__ import annotations

import logging
import random
import time
from datetime import datetime, timezone
from typing import Callable, Iterable, NamedTuple

from app.clients.fhir_api import FhirClient
from app.core.classifier import (
    REFERENCE_RANGES,
    classify_blood_pressure,
    classify_channel,
)
from app.core.errors import MonitorError
from app.core.logger import log_event, utc_now_iso
from app.core.loinc import BP_COMPONENT_CODES, resolve_channel
from app.core.telemetry import TelemetryStore
from app.core.trend import advance_series, generate_series, jitter
from app.models.fhir import (
    ObservationRecord,
    PanelObservation,
    PatientRecord,
    ScalarObservation,
)
from app.models.vitals import (
    SCALAR_CHANNELS,
    BloodPressureChannel,
    BloodPressureReport,
    Channel,
    ChannelReport,
    ConnectionStatus,
    Provenance,
    ScalarChannel,
    VitalsReport,
    VitalsSnapshot,
)
from app.transforms.fhir_r4.inbound import (
    bundle_resources,
    normalize_observation,
    normalize_patient,
)

logger = logging.getLogger("fhir-vitals")


class ChannelProfile(NamedTuple):
    """스칼라 채널의 시뮬레이션 파라미터"""

    baseline: float
    variance: float
    drift_variance: float
    decimals: int
    floor: float
    ceiling: float
    unit: str


CHANNEL_PROFILES = {
    Channel.HR: ChannelProfile(72, 15, 5, 0, 20, 250, "bpm"),
    Channel.SPO2: ChannelProfile(98, 3, 2, 0, 94, 100, "%"),
    Channel.TEMP: ChannelProfile(37.2, 0.8, 0.2, 1, 30.0, 45.0, "°C"),
    Channel.RR: ChannelProfile(16, 4, 2, 0, 2, 60, "/min"),
}

BP_BASELINE = (118, 76)
BP_DRIFT_VARIANCE = (4, 3)


def _with_precision(value: float, decimals: int) -> int | float:
    if decimals == 0:
        return int(round(value))
    return round(value, decimals)


def _format_value(value: float, decimals: int) -> str:
    return f"{value:.{decimals}f}"


def initial_snapshot(rng: random.Random | None = None) -> VitalsSnapshot:
    """정상 기준값으로 시뮬레이션 스냅샷 생성

    Args:
        rng: 난수 생성기(테스트용, 선택)

    Returns:
        모든 채널이 simulated인 스냅샷
    """
    channels = {
        channel.value: ScalarChannel(
            value=_with_precision(profile.baseline, profile.decimals),
            trend=generate_series(profile.baseline, profile.variance, rng=rng),
            source=Provenance.SIMULATED,
        )
        for channel, profile in CHANNEL_PROFILES.items()
    }
    systolic, diastolic = BP_BASELINE
    return VitalsSnapshot(
        **channels,
        bp=BloodPressureChannel(
            systolic=systolic, diastolic=diastolic, source=Provenance.SIMULATED
        ),
    )


def _blood_pressure_sides(observation: ObservationRecord) -> dict[str, float]:
    """관측값에서 존재하는 혈압 값만 추출

    Args:
        observation: 혈압 채널로 매핑된 관측값

    Returns:
        {"systolic"|"diastolic": 값}
    """
    if isinstance(observation, PanelObservation):
        sides = {
            "systolic": observation.systolic,
            "diastolic": observation.diastolic,
        }
        return {side: value for side, value in sides.items() if value is not None}
    if isinstance(observation, ScalarObservation):
        side = BP_COMPONENT_CODES.get(observation.code or "")
        if side:
            return {side: observation.value}
    return {}


def merge_observations(
    snapshot: VitalsSnapshot,
    observations: Iterable[ObservationRecord],
    rng: random.Random | None = None,
) -> VitalsSnapshot:
    """정규화된 관측값을 스냅샷에 병합

    채널마다 처음 나온 관측값만 반영한다(번들은 최신순).
    대응하는 관측값이 없는 채널은 이전 값과 출처를 유지한다.

    Args:
        snapshot: 현재 스냅샷
        observations: 관측값 목록
        rng: 난수 생성기(테스트용, 선택)

    Returns:
        새 스냅샷
    """
    updates: dict[str, object] = {}
    bp_sides: dict[str, float] = {}
    for observation in observations:
        channel = resolve_channel(observation.code)
        if channel is None:
            continue
        if channel is Channel.BP:
            for side, value in _blood_pressure_sides(observation).items():
                bp_sides.setdefault(side, value)
            continue
        if channel.value in updates or not isinstance(observation, ScalarObservation):
            continue
        profile = CHANNEL_PROFILES[channel]
        updates[channel.value] = ScalarChannel(
            value=_with_precision(observation.value, profile.decimals),
            trend=generate_series(observation.value, profile.variance, rng=rng),
            source=Provenance.SERVER,
        )

    if bp_sides:
        updates["bp"] = snapshot.bp.model_copy(
            update={
                **{side: int(round(value)) for side, value in bp_sides.items()},
                "source": Provenance.SERVER,
            }
        )
    if not updates:
        return snapshot
    return snapshot.model_copy(update=updates)


def apply_drift(
    snapshot: VitalsSnapshot, rng: random.Random | None = None
) -> VitalsSnapshot:
    """스냅샷의 모든 채널에 드리프트 한 단계 적용

    출처(provenance)는 바꾸지 않는다.

    Args:
        snapshot: 현재 스냅샷
        rng: 난수 생성기(테스트용, 선택)

    Returns:
        새 스냅샷
    """
    updates: dict[str, object] = {}
    for channel in SCALAR_CHANNELS:
        state = snapshot.scalar(channel)
        profile = CHANNEL_PROFILES[channel]
        trend = advance_series(
            state.trend, profile.drift_variance, rng=rng, anchor=float(state.value)
        )
        latest = min(max(trend[-1].value, profile.floor), profile.ceiling)
        updates[channel.value] = state.model_copy(
            update={"value": _with_precision(latest, profile.decimals), "trend": trend}
        )

    systolic_drift, diastolic_drift = BP_DRIFT_VARIANCE
    updates["bp"] = snapshot.bp.model_copy(
        update={
            "systolic": int(round(snapshot.bp.systolic + jitter(systolic_drift, rng))),
            "diastolic": int(
                round(snapshot.bp.diastolic + jitter(diastolic_drift, rng))
            ),
        }
    )
    return snapshot.model_copy(update=updates)


def build_report(snapshot: VitalsSnapshot, status: ConnectionStatus) -> VitalsReport:
    """스냅샷을 상태 등급이 포함된 조회 응답으로 변환

    Args:
        snapshot: 스냅샷
        status: 연결 상태

    Returns:
        생체신호 조회 응답
    """
    channels = {}
    for channel in SCALAR_CHANNELS:
        state = snapshot.scalar(channel)
        profile = CHANNEL_PROFILES[channel]
        reference = REFERENCE_RANGES[channel]
        channels[channel.value] = ChannelReport(
            value=state.value,
            display=_format_value(state.value, profile.decimals),
            unit=profile.unit,
            status=classify_channel(channel, state.value),
            low=reference.low,
            high=reference.high,
            source=state.source,
            trend=list(state.trend),
        )
    bp = snapshot.bp
    sources = [snapshot.scalar(channel).source for channel in SCALAR_CHANNELS]
    sources.append(bp.source)
    return VitalsReport(
        **channels,
        bp=BloodPressureReport(
            systolic=bp.systolic,
            diastolic=bp.diastolic,
            display=f"{bp.systolic}/{bp.diastolic}",
            category=classify_blood_pressure(bp.systolic, bp.diastolic),
            source=bp.source,
        ),
        has_server_data=Provenance.SERVER in sources,
        status=status,
    )


class VitalsMonitor:
    """현재 환자와 생체신호 스냅샷을 소유하는 상태 관리자

    모든 갱신은 이전 스냅샷에서 새 스냅샷을 만들어 통째로 교체한다.
    """

    def __init__(self, client: FhirClient, rng: random.Random | None = None) -> None:
        self._client = client
        self._rng = rng
        self._snapshot = initial_snapshot(rng)
        self._patient: PatientRecord | None = None
        self._status = ConnectionStatus()
        self._sequence = 0

    @property
    def client(self) -> FhirClient:
        return self._client

    def configure_client(self, client: FhirClient) -> None:
        """FHIR 클라이언트 교체(설정 변경 시)

        진행 중인 로드의 응답은 폐기된다.

        Args:
            client: 새 FHIR 클라이언트
        """
        self._client = client
        self._sequence += 1

    @property
    def current_patient(self) -> PatientRecord | None:
        return self._patient

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    def get_snapshot(self) -> VitalsSnapshot:
        return self._snapshot

    def update(
        self, reducer: Callable[[VitalsSnapshot], VitalsSnapshot]
    ) -> VitalsSnapshot:
        """리듀서로 새 스냅샷을 만들어 교체

        Args:
            reducer: 이전 스냅샷을 받아 새 스냅샷을 반환하는 함수

        Returns:
            새 스냅샷
        """
        self._snapshot = reducer(self._snapshot)
        return self._snapshot

    def report(self) -> VitalsReport:
        return build_report(self._snapshot, self._status)

    def drift(self) -> None:
        """주기적 드리프트 한 단계 적용"""
        snapshot = self.update(lambda current: apply_drift(current, self._rng))
        logger.debug(
            "drift hr=%s spo2=%s temp=%s rr=%s bp=%s/%s",
            snapshot.hr.value,
            snapshot.spo2.value,
            snapshot.temp.value,
            snapshot.rr.value,
            snapshot.bp.systolic,
            snapshot.bp.diastolic,
            extra={"event": "drift_tick", "stage": "drift"},
        )

    async def search_patients(self, name: str) -> list[PatientRecord]:
        """이름으로 환자 검색

        실패 시 빈 목록을 반환한다.

        Args:
            name: 검색어

        Returns:
            환자 레코드 목록
        """
        query = name.strip()
        if not query:
            return []
        try:
            bundle = await self._client.search_patients(query)
            return [
                normalize_patient(resource)
                for resource in bundle_resources(bundle, "Patient")
            ]
        except MonitorError as exc:
            log_event(
                "patient_search_failed",
                "ERROR",
                "-",
                "search",
                exc.message,
                error_code=exc.code,
            )
            return []

    async def load_patient(self, patient_id: str) -> bool:
        """환자와 vital-signs 관측값을 조회해 스냅샷에 병합

        실패 시 현재 환자와 스냅샷을 유지하고 연결 상태만 끊김으로 바꾼다.
        더 새로운 로드가 시작된 뒤 도착한 응답은 폐기한다.

        Args:
            patient_id: 환자 식별자

        Returns:
            반영 여부
        """
        self._sequence += 1
        sequence = self._sequence
        start = time.perf_counter()
        log_event("patient_load_start", "INFO", patient_id, "fetch", "환자 로드 시작")
        try:
            patient_resource = await self._client.read_patient(patient_id)
            observation_bundle = await self._client.search_vital_signs(patient_id)
            patient = normalize_patient(patient_resource)
            observations = [
                normalize_observation(resource)
                for resource in bundle_resources(observation_bundle, "Observation")
            ]
        except MonitorError as exc:
            if sequence != self._sequence:
                self._log_stale(patient_id)
                return False
            log_event(
                "patient_load_failed",
                "ERROR",
                patient_id,
                "fetch",
                exc.message,
                error_code=exc.code,
            )
            self._status = ConnectionStatus(connected=False, last_sync=None)
            TelemetryStore().update_status(
                {
                    "patient_id": patient_id,
                    "last_run_at": utc_now_iso(),
                    "last_success_at": None,
                    "last_status": "failed",
                    "last_error_code": exc.code,
                    "observation_count": None,
                }
            )
            return False

        if sequence != self._sequence:
            self._log_stale(patient_id)
            return False

        if not patient.patient_id:
            patient = patient.model_copy(update={"patient_id": patient_id})
        self.update(lambda current: merge_observations(current, observations, self._rng))
        self._patient = patient
        self._status = ConnectionStatus(
            connected=True, last_sync=datetime.now(timezone.utc)
        )
        log_event(
            "patient_load_complete",
            "INFO",
            patient_id,
            "merge",
            "환자 로드 완료",
            record_count=len(observations),
            duration_ms=int((time.perf_counter() - start) * 1000),
        )
        now = utc_now_iso()
        TelemetryStore().update_status(
            {
                "patient_id": patient_id,
                "last_run_at": now,
                "last_success_at": now,
                "last_status": "ok",
                "last_error_code": None,
                "observation_count": len(observations),
            }
        )
        return True

    def _log_stale(self, patient_id: str) -> None:
        log_event(
            "patient_load_stale",
            "WARNING",
            patient_id,
            "merge",
            "이전 요청의 응답 폐기",
        )
