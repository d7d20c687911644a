from __future__ import annotations

import logging

from app.core.errors import ResourceError
from app.core.loinc import BP_COMPONENT_CODES
from app.models.fhir import (
    Gender,
    ObservationRecord,
    PanelObservation,
    PatientRecord,
    ScalarObservation,
    UnrecognizedObservation,
)
from app.transforms.fhir_r4.mapping import GENDER_MAPPING, MRN_IDENTIFIER_TYPE
from app.utils.parsing import (
    coerce_float,
    coerce_text,
    parse_date_optional,
    parse_datetime_optional,
)

logger = logging.getLogger("fhir-vitals")


def _as_dict(value: object) -> dict:
    return value if isinstance(value, dict) else {}


def _as_list(value: object) -> list:
    return value if isinstance(value, list) else []


def _first_coding(concept: object) -> dict:
    """CodeableConcept의 첫 번째 coding 항목

    Args:
        concept: FHIR CodeableConcept

    Returns:
        coding 딕셔너리(없으면 빈 딕셔너리)
    """
    codings = _as_list(_as_dict(concept).get("coding"))
    if not codings:
        return {}
    return _as_dict(codings[0])


def _require_resource(resource: object, resource_type: str) -> dict:
    """리소스 형태와 resourceType 검증

    Args:
        resource: 원본 리소스
        resource_type: 기대하는 resourceType

    Returns:
        리소스 딕셔너리

    Raises:
        ResourceError: 객체가 아니거나 resourceType이 다른 경우
    """
    if not isinstance(resource, dict):
        raise ResourceError("resource", f"JSON 객체가 아님: {type(resource).__name__}")
    declared = resource.get("resourceType")
    if declared is not None and declared != resource_type:
        raise ResourceError("resourceType", f"{resource_type} 기대, {declared} 수신")
    return resource


def _display_name(resource: dict) -> str | None:
    """Patient.name[0]에서 표시 이름 구성

    Args:
        resource: Patient 리소스

    Returns:
        표시 이름 또는 None
    """
    names = _as_list(resource.get("name"))
    if not names:
        return None
    name = _as_dict(names[0])
    given = [
        text
        for text in (coerce_text(part) for part in _as_list(name.get("given")))
        if text
    ]
    parts = [" ".join(given) if given else None, coerce_text(name.get("family"))]
    display = " ".join(part for part in parts if part)
    return display or None


def _map_gender(value: object) -> Gender | None:
    """성별 값을 FHIR AdministrativeGender로 매핑

    Args:
        value: 원본 성별 값

    Returns:
        성별 또는 None(없거나 지원하지 않는 값)
    """
    text = coerce_text(value)
    if text is None:
        return None
    return GENDER_MAPPING.get(text.lower())


def _medical_record_number(resource: dict) -> str | None:
    """MR 타입 식별자 값을 찾고 없으면 리소스 id로 대체

    Args:
        resource: Patient 리소스

    Returns:
        의무기록번호 또는 None
    """
    for identifier in _as_list(resource.get("identifier")):
        identifier = _as_dict(identifier)
        type_code = _first_coding(identifier.get("type")).get("code")
        if type_code == MRN_IDENTIFIER_TYPE:
            value = coerce_text(identifier.get("value"))
            if value:
                return value
    return coerce_text(resource.get("id"))


def normalize_patient(resource: object) -> PatientRecord:
    """FHIR Patient 리소스를 환자 레코드로 변환

    누락된 필드는 None으로 남기고 예외를 던지지 않는다.

    Args:
        resource: Patient 리소스

    Returns:
        환자 레코드

    Raises:
        ResourceError: 리소스가 객체가 아니거나 Patient가 아닌 경우
    """
    resource = _require_resource(resource, "Patient")
    return PatientRecord(
        patient_id=coerce_text(resource.get("id")) or "",
        name=_display_name(resource),
        gender=_map_gender(resource.get("gender")),
        birth_date=parse_date_optional(resource.get("birthDate")),
        mrn=_medical_record_number(resource),
    )


def _component_value(components: list, code: str) -> float | None:
    """component 목록에서 코드가 일치하는 값 검색

    Args:
        components: Observation.component 목록
        code: 찾을 LOINC 코드

    Returns:
        수치 값 또는 None
    """
    for component in components:
        component = _as_dict(component)
        if _first_coding(component.get("code")).get("code") == code:
            return coerce_float(_as_dict(component.get("valueQuantity")).get("value"))
    return None


def normalize_observation(resource: object) -> ObservationRecord:
    """FHIR Observation 리소스를 관측 레코드로 변환

    valueQuantity가 있으면 스칼라, component 목록이 있으면 혈압 패널,
    둘 다 없으면 값 없는 레코드를 만든다.

    Args:
        resource: Observation 리소스

    Returns:
        관측 레코드
    """
    if not isinstance(resource, dict):
        logger.debug("Observation이 객체가 아님: %r", type(resource).__name__)
        return UnrecognizedObservation()

    concept = _as_dict(resource.get("code"))
    coding = _first_coding(concept)
    code = coerce_text(coding.get("code"))
    display = coerce_text(coding.get("display")) or coerce_text(concept.get("text"))
    effective = parse_datetime_optional(resource.get("effectiveDateTime"))

    quantity = resource.get("valueQuantity")
    if isinstance(quantity, dict):
        value = coerce_float(quantity.get("value"))
        if value is not None:
            return ScalarObservation(
                code=code,
                display=display,
                effective=effective,
                value=value,
                unit=coerce_text(quantity.get("unit")),
            )

    components = resource.get("component")
    if isinstance(components, list):
        sides = {
            side: _component_value(components, component_code)
            for component_code, side in BP_COMPONENT_CODES.items()
        }
        return PanelObservation(
            code=code,
            display=display,
            effective=effective,
            systolic=sides["systolic"],
            diastolic=sides["diastolic"],
        )

    logger.debug("해석할 수 없는 Observation: code=%s", code)
    return UnrecognizedObservation(code=code, display=display, effective=effective)


def bundle_resources(bundle: object, resource_type: str | None = None) -> list[dict]:
    """검색 번들에서 리소스 목록 추출

    Args:
        bundle: FHIR Bundle
        resource_type: 지정 시 해당 resourceType만 반환

    Returns:
        리소스 목록(entry가 없으면 빈 목록)

    Raises:
        ResourceError: 번들이 객체가 아닌 경우
    """
    if not isinstance(bundle, dict):
        raise ResourceError("bundle", f"JSON 객체가 아님: {type(bundle).__name__}")
    resources = []
    for entry in _as_list(bundle.get("entry")):
        resource = _as_dict(entry).get("resource")
        if not isinstance(resource, dict):
            continue
        if resource_type and resource.get("resourceType") not in (None, resource_type):
            continue
        resources.append(resource)
    return resources
