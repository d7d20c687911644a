from fastapi import APIRouter, Depends

from app.api.deps import get_monitor
from app.core.monitor import VitalsMonitor
from app.models.vitals import VitalsReport

router = APIRouter()


@router.get("/vitals")
def current_vitals(monitor: VitalsMonitor = Depends(get_monitor)) -> VitalsReport:
    """상태 등급이 포함된 현재 생체신호를 반환

    Args:
        monitor: 모니터 의존성

    Returns:
        생체신호 조회 응답
    """
    return monitor.report()
