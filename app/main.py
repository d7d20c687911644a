from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api.routes import router as api_router
from app.clients.fhir_api import FhirClient
from app.core.config import get_settings, load_app_config
from app.core.logging import configure_logging
from app.core.monitor import VitalsMonitor
from app.core.scheduler import start_scheduler, stop_scheduler


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """드리프트 스케줄러를 앱 수명 동안만 유지"""
    settings = get_settings()
    app.state.scheduler = None
    if settings.scheduler_enabled:
        app.state.scheduler = start_scheduler(load_app_config(), app.state.monitor)
    try:
        yield
    finally:
        stop_scheduler(app.state.scheduler)
        app.state.scheduler = None


def create_app(monitor: VitalsMonitor | None = None) -> FastAPI:
    """애플리케이션을 생성하고 FastAPI를 설정

    Args:
        monitor: 사용할 모니터(테스트용, 없으면 설정으로 생성)

    Returns:
        FastAPI 애플리케이션
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="FHIR Vitals Monitor", version=settings.version, lifespan=lifespan)
    app.state.monitor = monitor or VitalsMonitor(FhirClient(load_app_config().fhir))
    app.state.scheduler = None
    app.include_router(api_router)
    return app


app = create_app()
