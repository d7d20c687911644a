from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import ValidationError
import yaml

from app.clients.fhir_api import FhirClient
from app.core.auth import require_admin
from app.core.config import AppConfig, get_settings, load_app_config, reload_app_config
from app.core.logger import log_event
from app.core.scheduler import start_scheduler, stop_scheduler
from app.core.telemetry import TelemetryStore

router = APIRouter()

LOG_COLUMNS = (
    "timestamp",
    "level",
    "event",
    "patient_id",
    "stage",
    "error_code",
    "message",
    "duration_ms",
    "record_count",
)
STATUS_COLUMNS = (
    "patient_id",
    "last_run_at",
    "last_success_at",
    "last_status",
    "last_error_code",
    "observation_count",
)


def _is_positive_number(value: object) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and value > 0
    )


def _validate_config(config: dict) -> list[str]:
    """모니터 설정 유효성 검사

    Args:
        config: 모니터 설정

    Returns:
        에러 목록
    """
    errors: list[str] = []
    fhir = config.get("fhir") or {}
    drift = config.get("drift") or {}

    base_url = str(fhir.get("base_url", "")).strip()
    if not base_url.startswith(("http://", "https://")):
        errors.append("fhir.base_url은 http(s) URL이어야 함")
    if not _is_positive_number(fhir.get("timeout_seconds")):
        errors.append("fhir.timeout_seconds 양수 필요")
    for key in ("search_count", "observation_count"):
        value = fhir.get(key)
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            errors.append(f"fhir.{key} 양의 정수 필요")

    interval = drift.get("interval_seconds")
    if not isinstance(interval, int) or isinstance(interval, bool) or interval <= 0:
        errors.append("drift.interval_seconds 양의 정수 필요")
    if not isinstance(drift.get("enabled"), bool):
        errors.append("drift.enabled 불리언 필요")
    return errors


@router.get("/logs")
def admin_logs(
    event: str | None = None,
    patient_id: str | None = None,
    limit: int = Query(200, ge=1, le=1000),
    admin: None = Depends(require_admin),
) -> list[dict]:
    """텔레메트리 로그 조회

    Args:
        event: 이벤트 이름 필터(선택)
        patient_id: 환자 식별자 필터(선택)
        limit: 최대 행 수
        admin: 관리자 인증 의존성

    Returns:
        로그 목록
    """
    rows = TelemetryStore().query_logs(event=event, patient_id=patient_id, limit=limit)
    return [dict(zip(LOG_COLUMNS, row)) for row in rows]


@router.get("/status")
def admin_status(admin: None = Depends(require_admin)) -> list[dict]:
    """환자별 동기화 상태 조회

    Args:
        admin: 관리자 인증 의존성

    Returns:
        상태 목록
    """
    rows = TelemetryStore().query_status()
    return [dict(zip(STATUS_COLUMNS, row)) for row in rows]


@router.get("/config")
def admin_config(admin: None = Depends(require_admin)) -> dict:
    """현재 모니터 설정 조회

    Args:
        admin: 관리자 인증 의존성

    Returns:
        설정 딕셔너리
    """
    return load_app_config().model_dump()


@router.post("/config")
async def save_config(
    request: Request, payload: dict, admin: None = Depends(require_admin)
) -> dict:
    """설정 저장 후 FHIR 클라이언트와 드리프트 스케줄러에 반영

    전달된 섹션 키만 기존 설정에 덮어쓴다.

    Args:
        request: FastAPI 요청 객체
        payload: 변경할 설정(부분)
        admin: 관리자 인증 의존성

    Returns:
        저장된 설정 딕셔너리

    Raises:
        HTTPException: 설정 검증 실패 시(422)
    """
    settings = get_settings()
    config = load_app_config().model_dump()
    for section in ("fhir", "drift"):
        values = payload.get(section)
        if isinstance(values, dict):
            config[section] = {**config[section], **values}

    errors = _validate_config(config)
    if not errors:
        try:
            AppConfig(**config)
        except ValidationError as exc:
            errors = [error["msg"] for error in exc.errors()]
    if errors:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=errors
        )

    with open(settings.config_path, "w", encoding="utf-8") as handle:
        yaml.safe_dump(config, handle, allow_unicode=True, sort_keys=False)

    app_config = reload_app_config()
    state = request.app.state
    state.monitor.configure_client(FhirClient(app_config.fhir))
    if settings.scheduler_enabled:
        stop_scheduler(getattr(state, "scheduler", None))
        state.scheduler = start_scheduler(app_config, state.monitor)
    log_event("config_saved", "INFO", "-", "admin", "설정 저장")
    return app_config.model_dump()
