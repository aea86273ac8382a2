from __future__ import annotations

import json
from typing import Callable

import httpx
import pytest

from repositories.hospital import RecordNotFoundError, RepositoryError
from repositories.supabase import SupabaseHospitalRepository, create_supabase_http_client
from shared.config.settings import SupabaseSettings
from services.discharge.reconciliation import DischargeReconciler
from shared.models.hospital import AdmissionStatus

Handler = Callable[[httpx.Request], httpx.Response]


class _Recorder:
    def __init__(self, handler: Handler) -> None:
        self.requests: list[httpx.Request] = []
        self._handler = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)


def _repository(
    handler: Handler, *, hospital_id: str | None = None
) -> tuple[SupabaseHospitalRepository, _Recorder]:
    recorder = _Recorder(handler)
    client = httpx.AsyncClient(
        base_url="https://demo.supabase.co/rest/v1",
        transport=httpx.MockTransport(recorder),
    )
    return SupabaseHospitalRepository(client, hospital_id=hospital_id), recorder


@pytest.mark.anyio("asyncio")
async def test_discharged_admissions_embed_patient_and_filter_tenant() -> None:
    rows = [
        {
            "id": 7,
            "patient_id": "p2",
            "status": "DISCHARGED",
            "admission_date": "2024-02-02T09:00:00+00:00",
            "patient": {
                "id": "p2",
                "first_name": "Ravi",
                "transactions": [{"amount": 12000}, {"amount": 8000}],
            },
        }
    ]
    repository, recorder = _repository(
        lambda request: httpx.Response(200, json=rows), hospital_id="H1"
    )

    admissions = await repository.list_discharged_admissions()
    await repository.aclose()

    request = recorder.requests[0]
    assert request.method == "GET"
    assert request.url.path == "/rest/v1/patient_admissions"
    assert request.url.params["status"] == "eq.DISCHARGED"
    assert request.url.params["hospital_id"] == "eq.H1"
    assert request.url.params["select"].startswith("*,patient:patients(")
    assert admissions[0].id == "7"
    assert admissions[0].patient is not None
    assert admissions[0].patient.total_spent == 20000


@pytest.mark.anyio("asyncio")
async def test_discharged_patients_are_ordered_and_limited() -> None:
    repository, recorder = _repository(lambda request: httpx.Response(200, json=[]))

    assert await repository.list_discharged_patients(25) == []

    params = recorder.requests[0].url.params
    assert params["ipd_status"] == "eq.DISCHARGED"
    assert params["order"] == "created_at.desc"
    assert params["limit"] == "25"
    assert "hospital_id" not in params


@pytest.mark.anyio("asyncio")
async def test_missing_summary_returns_none() -> None:
    repository, recorder = _repository(lambda request: httpx.Response(200, json=[]))

    assert await repository.get_discharge_summary("a1") is None
    assert recorder.requests[0].url.params["admission_id"] == "eq.a1"


@pytest.mark.anyio("asyncio")
async def test_history_is_requested_newest_first() -> None:
    rows = [{"id": "s4", "patient_id": "p4", "final_diagnosis": "Gastroenteritis"}]
    repository, recorder = _repository(lambda request: httpx.Response(200, json=rows))

    history = await repository.list_discharge_history("p4")

    assert [summary.id for summary in history] == ["s4"]
    assert recorder.requests[0].url.params["order"] == "created_at.desc"


@pytest.mark.anyio("asyncio")
async def test_patient_update_sends_null_status_and_asks_for_rows() -> None:
    repository, recorder = _repository(
        lambda request: httpx.Response(200, json=[{"id": "p2", "ipd_status": None}])
    )

    await repository.update_patient_ipd_status("p2", None)

    request = recorder.requests[0]
    assert request.method == "PATCH"
    assert request.url.params["id"] == "eq.p2"
    assert request.headers["Prefer"] == "return=representation"
    assert json.loads(request.content) == {"ipd_status": None}


@pytest.mark.anyio("asyncio")
async def test_mutation_matching_no_rows_raises_not_found() -> None:
    repository, _ = _repository(lambda request: httpx.Response(200, json=[]))

    with pytest.raises(RecordNotFoundError):
        await repository.delete_discharge_summary("s9")
    with pytest.raises(RecordNotFoundError):
        await repository.update_admission_status("a9", AdmissionStatus.ADMITTED)


@pytest.mark.anyio("asyncio")
async def test_http_errors_become_repository_errors() -> None:
    repository, _ = _repository(lambda request: httpx.Response(500, json={"message": "boom"}))

    with pytest.raises(RepositoryError, match="status 500"):
        await repository.list_discharged_admissions()


@pytest.mark.anyio("asyncio")
async def test_transport_errors_become_repository_errors() -> None:
    def _refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    repository, _ = _repository(_refuse)

    with pytest.raises(RepositoryError, match="request failed"):
        await repository.get_discharge_summary("a1")


@pytest.mark.anyio("asyncio")
async def test_non_json_success_body_is_a_repository_error() -> None:
    repository, _ = _repository(
        lambda request: httpx.Response(200, text="<html>gateway</html>")
    )

    with pytest.raises(RepositoryError, match="non-JSON body"):
        await repository.list_discharged_admissions()


@pytest.mark.anyio("asyncio")
async def test_reconciler_skips_admissions_source_returning_html() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/patient_admissions"):
            return httpx.Response(200, text="<html>gateway</html>")
        if request.url.path.endswith("/patients"):
            return httpx.Response(
                200,
                json=[
                    {
                        "id": "p1",
                        "patient_id": "PID1",
                        "first_name": "Asha",
                        "ipd_status": "DISCHARGED",
                    }
                ],
            )
        return httpx.Response(200, json=[])

    repository, _ = _repository(handler)

    result = await DischargeReconciler(repository).reconcile()

    assert [view.id for view in result.patients] == ["p1"]


@pytest.mark.anyio("asyncio")
async def test_malformed_rows_become_repository_errors() -> None:
    repository, _ = _repository(lambda request: httpx.Response(200, json=[{"first_name": "x"}]))

    with pytest.raises(RepositoryError, match="Malformed row"):
        await repository.list_discharged_patients(10)


@pytest.mark.anyio("asyncio")
async def test_http_client_carries_supabase_headers() -> None:
    settings = SupabaseSettings(
        url="https://demo.supabase.co/", api_key="anon-key", schema_name="hospital"
    )

    client = create_supabase_http_client(settings)
    await client.aclose()

    assert str(client.base_url) == "https://demo.supabase.co/rest/v1/"
    assert client.headers["apikey"] == "anon-key"
    assert client.headers["Authorization"] == "Bearer anon-key"
    assert client.headers["Accept-Profile"] == "hospital"


def test_http_client_requires_url_and_key() -> None:
    with pytest.raises(RepositoryError):
        create_supabase_http_client(SupabaseSettings(url="https://demo.supabase.co", api_key=None))
