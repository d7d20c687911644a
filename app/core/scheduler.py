from __future__ import annotations

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from app.core.config import AppConfig
from app.core.monitor import VitalsMonitor

DRIFT_JOB_ID = "vitals-drift"


async def _drift_job(monitor: VitalsMonitor) -> None:
    monitor.drift()


def start_scheduler(config: AppConfig, monitor: VitalsMonitor) -> AsyncIOScheduler:
    """드리프트 시뮬레이션용 스케줄러를 시작

    실행 중인 이벤트 루프 안에서 호출해야 한다.

    Args:
        config: 모니터 설정 객체
        monitor: 드리프트를 적용할 모니터

    Returns:
        정지 핸들로 쓰는 AsyncIOScheduler 인스턴스
    """
    scheduler = AsyncIOScheduler()
    if config.drift.enabled:
        scheduler.add_job(
            _drift_job,
            "interval",
            args=[monitor],
            seconds=config.drift.interval_seconds,
            id=DRIFT_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
    scheduler.start()
    return scheduler


def stop_scheduler(scheduler: AsyncIOScheduler | None) -> None:
    """스케줄러 정지

    Args:
        scheduler: start_scheduler가 반환한 핸들(없으면 무시)
    """
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
