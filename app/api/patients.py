from fastapi import APIRouter, Depends, Query

from app.api.deps import get_monitor
from app.core.monitor import VitalsMonitor
from app.models.fhir import PatientRecord
from app.models.vitals import ConnectionStatus

router = APIRouter()


@router.get("/patients")
async def search_patients(
    name: str = Query(..., min_length=1),
    monitor: VitalsMonitor = Depends(get_monitor),
) -> list[PatientRecord]:
    """이름으로 환자 검색

    Args:
        name: 검색어
        monitor: 모니터 의존성

    Returns:
        환자 목록
    """
    return await monitor.search_patients(name)


@router.post("/patients/{patient_id}/load")
async def load_patient(
    patient_id: str, monitor: VitalsMonitor = Depends(get_monitor)
) -> dict:
    """환자를 선택하고 생체신호를 불러옴

    Args:
        patient_id: 환자 식별자
        monitor: 모니터 의존성

    Returns:
        반영 여부와 연결 상태
    """
    loaded = await monitor.load_patient(patient_id)
    return {"loaded": loaded, "status": monitor.status.model_dump(mode="json")}


@router.get("/patient")
def current_patient(monitor: VitalsMonitor = Depends(get_monitor)) -> PatientRecord | None:
    """현재 선택된 환자를 반환"""
    return monitor.current_patient


@router.get("/status")
def connection_status(monitor: VitalsMonitor = Depends(get_monitor)) -> ConnectionStatus:
    """FHIR 연결 상태를 반환"""
    return monitor.status
