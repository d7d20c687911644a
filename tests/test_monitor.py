import asyncio
import random

import httpx

from app.clients.fhir_api import FhirClient
from app.core.config import FhirServerConfig
from app.core.monitor import (
    VitalsMonitor,
    apply_drift,
    initial_snapshot,
    merge_observations,
)
from app.core.telemetry import TelemetryStore
from app.models.fhir import PanelObservation, ScalarObservation, UnrecognizedObservation
from app.models.vitals import SCALAR_CHANNELS, Provenance
from conftest import FHIR_BASE, make_bundle, make_vital


def _patient_resource(patient_id: str, family: str = "Smith") -> dict:
    return {
        "resourceType": "Patient",
        "id": patient_id,
        "name": [{"given": ["John"], "family": family}],
        "gender": "male",
        "birthDate": "1980-01-01",
    }


def test_initial_snapshot_is_simulated_baseline():
    snapshot = initial_snapshot(random.Random(0))
    assert snapshot.hr.value == 72
    assert snapshot.spo2.value == 98
    assert snapshot.temp.value == 37.2
    assert snapshot.rr.value == 16
    assert (snapshot.bp.systolic, snapshot.bp.diastolic) == (118, 76)
    assert all(snapshot.scalar(ch).source is Provenance.SIMULATED for ch in SCALAR_CHANNELS)
    assert snapshot.bp.source is Provenance.SIMULATED
    assert len(snapshot.hr.trend) == 20


def test_merge_heart_rate_only():
    before = initial_snapshot(random.Random(0))
    after = merge_observations(before, [ScalarObservation(code="8867-4", value=85)])
    assert after.hr.value == 85
    assert after.hr.source is Provenance.SERVER
    assert all(77.5 <= point.value <= 92.5 for point in after.hr.trend)
    assert after.spo2 == before.spo2
    assert after.temp == before.temp
    assert after.rr == before.rr
    assert after.bp == before.bp


def test_merge_applies_channel_precision():
    before = initial_snapshot(random.Random(0))
    after = merge_observations(
        before,
        [
            ScalarObservation(code="8310-5", value=38.26),
            ScalarObservation(code="2708-6", value=96.6),
        ],
    )
    assert after.temp.value == 38.3
    assert after.spo2.value == 97
    assert isinstance(after.spo2.value, int)


def test_merge_first_observation_per_channel_wins():
    before = initial_snapshot(random.Random(0))
    after = merge_observations(
        before,
        [
            ScalarObservation(code="8867-4", value=110),
            ScalarObservation(code="8867-4", value=64),
        ],
    )
    assert after.hr.value == 110


def test_merge_ignores_unknown_and_unrecognized():
    before = initial_snapshot(random.Random(0))
    after = merge_observations(
        before,
        [
            ScalarObservation(code="29463-7", value=80.0, unit="kg"),
            UnrecognizedObservation(code="8867-4"),
            ScalarObservation(code=None, value=12),
        ],
    )
    assert after == before


def test_merge_blood_pressure_panel():
    before = initial_snapshot(random.Random(0))
    after = merge_observations(
        before, [PanelObservation(code="85354-9", systolic=141.6, diastolic=92.2)]
    )
    assert (after.bp.systolic, after.bp.diastolic) == (142, 92)
    assert after.bp.source is Provenance.SERVER


def test_merge_blood_pressure_missing_side_keeps_prior():
    before = initial_snapshot(random.Random(0))
    after = merge_observations(before, [PanelObservation(code="85354-9", systolic=130)])
    assert after.bp.systolic == 130
    assert after.bp.diastolic == 76


def test_merge_standalone_diastolic_reading():
    before = initial_snapshot(random.Random(0))
    after = merge_observations(before, [ScalarObservation(code="8462-4", value=88)])
    assert (after.bp.systolic, after.bp.diastolic) == (118, 88)
    assert after.bp.source is Provenance.SERVER


def test_drift_preserves_provenance_and_length():
    rng = random.Random(11)
    snapshot = merge_observations(
        initial_snapshot(rng), [ScalarObservation(code="8867-4", value=85)], rng
    )
    for _ in range(30):
        snapshot = apply_drift(snapshot, rng)
    assert snapshot.hr.source is Provenance.SERVER
    assert snapshot.spo2.source is Provenance.SIMULATED
    assert snapshot.bp.source is Provenance.SIMULATED
    assert all(len(snapshot.scalar(ch).trend) == 20 for ch in SCALAR_CHANNELS)
    assert 94 <= snapshot.spo2.value <= 100


def test_drift_value_follows_trend_endpoint():
    snapshot = apply_drift(initial_snapshot(random.Random(5)), random.Random(6))
    assert snapshot.hr.trend[-1].time == "now"
    assert snapshot.hr.value == int(round(snapshot.hr.trend[-1].value))
    assert snapshot.temp.value == round(snapshot.temp.trend[-1].value, 1)
    assert abs(snapshot.bp.systolic - 118) <= 2
    assert abs(snapshot.bp.diastolic - 76) <= 2


def test_load_patient_with_heart_rate_only(fhir_server):
    fhir_server.add("/Patient/p1", _patient_resource("p1"))
    fhir_server.add("/Observation", make_bundle([make_vital("8867-4", 85, "/min")]))
    monitor = VitalsMonitor(fhir_server.client(), rng=random.Random(0))
    before = monitor.get_snapshot()

    assert asyncio.run(monitor.load_patient("p1")) is True

    snapshot = monitor.get_snapshot()
    assert snapshot.hr.value == 85
    assert snapshot.hr.source is Provenance.SERVER
    assert snapshot.spo2 == before.spo2
    assert snapshot.temp == before.temp
    assert snapshot.rr == before.rr
    assert snapshot.bp == before.bp
    assert monitor.current_patient.name == "John Smith"
    assert monitor.status.connected is True
    assert monitor.status.last_sync is not None


def test_load_patient_sends_vital_signs_query(fhir_server):
    fhir_server.add("/Patient/p1", _patient_resource("p1"))
    fhir_server.add("/Observation", make_bundle([]))
    monitor = VitalsMonitor(fhir_server.client())
    asyncio.run(monitor.load_patient("p1"))

    observation_request = fhir_server.requests[-1]
    assert observation_request.url.params["patient"] == "p1"
    assert observation_request.url.params["category"] == "vital-signs"
    assert observation_request.url.params["_sort"] == "-date"
    assert observation_request.url.params["_count"] == "50"
    assert observation_request.headers["accept"] == "application/fhir+json"


def test_load_patient_without_observations_keeps_vitals(fhir_server):
    fhir_server.add("/Patient/p1", _patient_resource("p1"))
    fhir_server.add("/Observation", {"resourceType": "Bundle", "total": 0})
    monitor = VitalsMonitor(fhir_server.client())
    before = monitor.get_snapshot()

    assert asyncio.run(monitor.load_patient("p1")) is True
    assert monitor.get_snapshot() == before
    assert monitor.current_patient.patient_id == "p1"


def test_failed_load_keeps_previous_patient_and_snapshot(fhir_server):
    fhir_server.add("/Patient/p1", _patient_resource("p1"))
    fhir_server.add("/Observation", make_bundle([make_vital("8867-4", 85)]))
    monitor = VitalsMonitor(fhir_server.client())
    asyncio.run(monitor.load_patient("p1"))
    snapshot = monitor.get_snapshot()

    fhir_server.add("/Patient/p2", {"resourceType": "OperationOutcome"}, status_code=500)
    assert asyncio.run(monitor.load_patient("p2")) is False

    assert monitor.get_snapshot() == snapshot
    assert monitor.current_patient.patient_id == "p1"
    assert monitor.status.connected is False
    assert monitor.status.last_sync is None


def test_network_failure_is_absorbed(fhir_server):
    request = httpx.Request("GET", f"{FHIR_BASE}/Patient/p1")
    fhir_server.add("/Patient/p1", httpx.ConnectError("unreachable", request=request))
    monitor = VitalsMonitor(fhir_server.client())
    before = monitor.get_snapshot()

    assert asyncio.run(monitor.load_patient("p1")) is False
    assert monitor.get_snapshot() == before
    assert monitor.current_patient is None
    assert monitor.status.connected is False

    rows = TelemetryStore().query_logs(event="patient_load_failed")
    assert rows
    assert rows[0][5] == "FHIR_TRANSPORT_001"


def test_observation_failure_does_not_commit_patient(fhir_server):
    fhir_server.add("/Patient/p1", _patient_resource("p1"))
    fhir_server.add("/Observation", ["not", "a", "bundle"])
    monitor = VitalsMonitor(fhir_server.client())

    assert asyncio.run(monitor.load_patient("p1")) is False
    assert monitor.current_patient is None


def test_stale_response_is_discarded():
    gate = asyncio.Event()
    resources = {
        "slow": (_patient_resource("slow", "Slow"), 130),
        "fast": (_patient_resource("fast", "Fast"), 85),
    }

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.startswith("/baseR4/Patient/"):
            patient_id = request.url.path.rsplit("/", 1)[-1]
            if patient_id == "slow":
                await gate.wait()
            return httpx.Response(200, json=resources[patient_id][0])
        patient_id = request.url.params["patient"]
        heart_rate = resources[patient_id][1]
        return httpx.Response(200, json=make_bundle([make_vital("8867-4", heart_rate)]))

    async def scenario(monitor: VitalsMonitor) -> tuple[bool, bool]:
        slow = asyncio.create_task(monitor.load_patient("slow"))
        await asyncio.sleep(0)
        fast = await monitor.load_patient("fast")
        gate.set()
        return await slow, fast

    client = FhirClient(
        FhirServerConfig(base_url=FHIR_BASE), transport=httpx.MockTransport(handler)
    )
    monitor = VitalsMonitor(client)
    slow_loaded, fast_loaded = asyncio.run(scenario(monitor))

    assert fast_loaded is True
    assert slow_loaded is False
    assert monitor.current_patient.patient_id == "fast"
    assert monitor.get_snapshot().hr.value == 85


def test_search_patients(fhir_server):
    fhir_server.add(
        "/Patient",
        make_bundle([_patient_resource("p1"), _patient_resource("p2", "Jones")]),
    )
    monitor = VitalsMonitor(fhir_server.client())
    patients = asyncio.run(monitor.search_patients(" Smith "))

    assert [p.patient_id for p in patients] == ["p1", "p2"]
    assert fhir_server.requests[0].url.params["name"] == "Smith"
    assert fhir_server.requests[0].url.params["_count"] == "10"


def test_search_patients_failure_returns_empty(fhir_server):
    fhir_server.add("/Patient", {"resourceType": "OperationOutcome"}, status_code=503)
    monitor = VitalsMonitor(fhir_server.client())
    assert asyncio.run(monitor.search_patients("Smith")) == []
    assert asyncio.run(monitor.search_patients("   ")) == []


def test_report_classifies_channels(fhir_server):
    monitor = VitalsMonitor(fhir_server.client(), rng=random.Random(0))
    monitor.update(
        lambda current: merge_observations(
            current,
            [
                ScalarObservation(code="8867-4", value=130),
                ScalarObservation(code="2708-6", value=92),
                PanelObservation(code="85354-9", systolic=135, diastolic=85),
            ],
        )
    )
    report = monitor.report()
    assert report.hr.status == "critical"
    assert report.spo2.status == "warning"
    assert report.temp.status == "normal"
    assert report.temp.display == "37.2"
    assert report.bp.display == "135/85"
    assert report.bp.category == "elevated"
    assert report.has_server_data is True


def test_load_patient_with_non_finite_values_keeps_prior(fhir_server):
    fhir_server.add("/Patient/p1", _patient_resource("p1"))
    fhir_server.add(
        "/Observation",
        make_bundle(
            [
                make_vital("8867-4", "NaN", "/min"),
                {
                    "resourceType": "Observation",
                    "code": {"coding": [{"code": "85354-9"}]},
                    "component": [
                        {
                            "code": {"coding": [{"code": "8480-6"}]},
                            "valueQuantity": {"value": "1e400"},
                        },
                        {
                            "code": {"coding": [{"code": "8462-4"}]},
                            "valueQuantity": {"value": 84},
                        },
                    ],
                },
            ]
        ),
    )
    monitor = VitalsMonitor(fhir_server.client(), rng=random.Random(0))
    before = monitor.get_snapshot()

    assert asyncio.run(monitor.load_patient("p1")) is True

    snapshot = monitor.get_snapshot()
    assert snapshot.hr == before.hr
    assert snapshot.bp.systolic == before.bp.systolic
    assert snapshot.bp.diastolic == 84
    assert monitor.status.connected is True


def test_first_drift_tick_stays_near_server_value():
    for seed in range(200):
        rng = random.Random(seed)
        merged = merge_observations(
            initial_snapshot(rng), [ScalarObservation(code="8867-4", value=85)], rng
        )
        drifted = apply_drift(merged, rng)
        assert abs(drifted.hr.trend[-1].value - 85) <= 2.5
        assert abs(drifted.hr.value - 85) <= 3
        assert drifted.hr.source is Provenance.SERVER
