from fastapi import Request

from app.core.monitor import VitalsMonitor


def get_monitor(request: Request) -> VitalsMonitor:
    """애플리케이션 상태에 등록된 모니터를 반환

    Args:
        request: FastAPI 요청 객체

    Returns:
        VitalsMonitor 인스턴스
    """
    return request.app.state.monitor
