import httpx
import pytest

from app.clients.fhir_api import FhirClient
from app.core.config import FhirServerConfig, get_settings, load_app_config
from app.core.telemetry import TelemetryStore

FHIR_BASE = "http://fhir.test/baseR4"


def make_bundle(resources: list[dict]) -> dict:
    return {
        "resourceType": "Bundle",
        "type": "searchset",
        "entry": [{"resource": resource} for resource in resources],
    }


def make_vital(code: str, value: float, unit: str = "") -> dict:
    return {
        "resourceType": "Observation",
        "code": {"coding": [{"system": "http://loinc.org", "code": code}]},
        "valueQuantity": {"value": value, "unit": unit},
        "effectiveDateTime": "2024-03-01T08:30:00Z",
    }


class FakeFhirServer:
    """경로별 응답을 돌려주는 FHIR 서버 대역"""

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, object]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, path: str, body: object, status_code: int = 200) -> None:
        self.routes[f"/baseR4{path}"] = (status_code, body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status_code, body = self.routes.get(
            request.url.path, (404, {"resourceType": "OperationOutcome"})
        )
        if isinstance(body, Exception):
            raise body
        return httpx.Response(status_code, json=body)

    def client(self) -> FhirClient:
        return FhirClient(
            FhirServerConfig(base_url=FHIR_BASE),
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setenv("DUCKDB_PATH", str(tmp_path / "telemetry.duckdb"))
    monkeypatch.setenv("CONFIG_PATH", str(tmp_path / "monitor.yaml"))
    monkeypatch.setenv("SCHEDULER_ENABLED", "false")
    get_settings.cache_clear()
    load_app_config.cache_clear()
    TelemetryStore._instance = None
    yield
    TelemetryStore._instance = None
    get_settings.cache_clear()
    load_app_config.cache_clear()


@pytest.fixture
def fhir_server() -> FakeFhirServer:
    return FakeFhirServer()
