"""FHIR R4 REST 읽기 전용 클라이언트

Patient 검색/조회와 vital-signs Observation 검색만 지원한다.
"""

from __future__ import annotations

from urllib.parse import quote

import httpx

from app.core.config import FhirServerConfig
from app.core.errors import FhirTransportError, ResourceError

FHIR_ACCEPT = "application/fhir+json"


class FhirClient:
    """FHIR 서버 비동기 클라이언트"""

    def __init__(
        self,
        config: FhirServerConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._config.base_url.rstrip("/")

    async def get(self, path: str, params: dict | None = None) -> dict:
        """FHIR API GET 요청

        Args:
            path: API 경로(예: "/Patient/123")
            params: 쿼리 파라미터(선택)

        Returns:
            응답 JSON 딕셔너리

        Raises:
            FhirTransportError: 네트워크 오류 또는 HTTP 오류 상태
            ResourceError: 응답이 JSON 객체가 아닌 경우
        """
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self._config.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.get(
                    url, params=params, headers={"Accept": FHIR_ACCEPT}
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise FhirTransportError(
                f"FHIR 서버 오류 {exc.response.status_code}: {path}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise FhirTransportError(
                f"FHIR 서버 연결 실패: {type(exc).__name__}: {exc}"
            ) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise ResourceError("body", "JSON 응답이 아님") from exc
        if not isinstance(data, dict):
            raise ResourceError("body", f"JSON 객체가 아님: {type(data).__name__}")
        return data

    async def search_patients(self, name: str) -> dict:
        """이름으로 Patient 검색 번들 조회

        Args:
            name: 검색할 이름

        Returns:
            Patient 검색 번들
        """
        return await self.get(
            "/Patient",
            params={"name": name, "_count": str(self._config.search_count)},
        )

    async def read_patient(self, patient_id: str) -> dict:
        """단일 Patient 리소스 조회

        Args:
            patient_id: 환자 식별자

        Returns:
            Patient 리소스
        """
        return await self.get(f"/Patient/{quote(patient_id, safe='')}")

    async def search_vital_signs(self, patient_id: str) -> dict:
        """최신순 vital-signs Observation 번들 조회

        Args:
            patient_id: 환자 식별자

        Returns:
            Observation 검색 번들
        """
        return await self.get(
            "/Observation",
            params={
                "patient": patient_id,
                "category": "vital-signs",
                "_sort": "-date",
                "_count": str(self._config.observation_count),
            },
        )
