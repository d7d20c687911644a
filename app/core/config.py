from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """환경 변수에서 애플리케이션 설정을 로드"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    environment: Literal["local", "dev", "prod"] = "local"
    version: str = "0.1.0"
    log_level: str = "INFO"
    admin_id: str = "admin"
    admin_password: str = "admin"
    config_path: str = "monitor.yaml"
    duckdb_path: str = "data/telemetry.duckdb"
    scheduler_enabled: bool = True


class FhirServerConfig(BaseModel):
    """FHIR 서버 접속 설정"""

    base_url: str = "https://hapi.fhir.org/baseR4"
    timeout_seconds: float = Field(default=10.0, gt=0)
    search_count: int = Field(default=10, gt=0)
    observation_count: int = Field(default=50, gt=0)


class DriftConfig(BaseModel):
    """드리프트 시뮬레이션 설정"""

    enabled: bool = True
    interval_seconds: int = Field(default=3, gt=0)


class AppConfig(BaseModel):
    """모니터 설정 래퍼"""

    fhir: FhirServerConfig = Field(default_factory=FhirServerConfig)
    drift: DriftConfig = Field(default_factory=DriftConfig)


@lru_cache
def get_settings() -> Settings:
    """캐시된 설정 인스턴스를 반환"""
    return Settings()


@lru_cache
def load_app_config() -> AppConfig:
    """설정 파일(YAML)에서 모니터 설정 로드

    파일이 없으면 기본값을 사용한다.

    Returns:
        모니터 설정 인스턴스
    """
    settings = get_settings()
    path = Path(settings.config_path)
    if not path.exists():
        return AppConfig()
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return AppConfig(**data)


def reload_app_config() -> AppConfig:
    """설정 캐시를 초기화하고 다시 로드

    Returns:
        모니터 설정 인스턴스
    """
    load_app_config.cache_clear()
    return load_app_config()
