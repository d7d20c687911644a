class MonitorError(Exception):
    """모니터 예외의 기본 클래스"""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class FhirTransportError(MonitorError):
    """FHIR 서버 통신 실패 시 발생"""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__("FHIR_TRANSPORT_001", message)
        self.status_code = status_code


class ResourceError(MonitorError):
    """FHIR 리소스 형식이 예상과 다를 때 발생"""

    def __init__(self, field: str, message: str) -> None:
        super().__init__("FHIR_PARSE_001", f"{field}: {message}")
