import logging

LOG_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s "
    "event=%(event)s patient_id=%(patient_id)s stage=%(stage)s "
    "error_code=%(error_code)s %(message)s"
)

# 드리프트 틱과 FHIR 요청마다 INFO 로그를 남기는 라이브러리
CHATTY_LOGGERS = ("apscheduler.executors", "apscheduler.scheduler", "httpx")

RECORD_DEFAULTS = {
    "event": "system",
    "patient_id": "-",
    "stage": "-",
    "error_code": "-",
}


class VitalsFormatter(logging.Formatter):
    """모니터 이벤트 필드가 없는 레코드에 기본값을 채우는 포매터"""

    def format(self, record: logging.LogRecord) -> str:
        for field, default in RECORD_DEFAULTS.items():
            if getattr(record, field, None) is None:
                setattr(record, field, default)
        return super().format(record)


def configure_logging(level: str) -> None:
    """애플리케이션 로깅을 설정

    DEBUG가 아니면 스케줄러 실행 로그와 HTTP 요청 로그는 WARNING 이상만 남긴다.

    Args:
        level: 로깅 레벨 문자열
    """
    handler = logging.StreamHandler()
    handler.setFormatter(VitalsFormatter(LOG_FORMAT))
    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)

    chatty_level = logging.DEBUG if level.upper() == "DEBUG" else logging.WARNING
    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(chatty_level)
