from __future__ import annotations

from typing import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient


@pytest.fixture
async def client() -> AsyncIterator[AsyncClient]:
    from services.clinical_charts.app import app

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


ENTRIES = [
    {"oralAmount": "100", "iv01": "50", "urine": "80"},
    {"oralAmount": "", "iv02": "200", "drain1": "30"},
]


@pytest.mark.anyio("asyncio")
async def test_health_endpoint(client: AsyncClient) -> None:
    response = await client.get("/health")

    assert response.json() == {"status": "ok", "service": "clinical_charts"}


@pytest.mark.anyio("asyncio")
async def test_totals_endpoint_uses_camel_case(client: AsyncClient) -> None:
    response = await client.post("/intake-output/totals", json={"entries": ENTRIES})

    assert response.status_code == 200
    assert response.json() == {"totalIntake": 350.0, "totalOutput": 110.0, "balance": 240.0}


@pytest.mark.anyio("asyncio")
async def test_record_endpoint_returns_summary(client: AsyncClient) -> None:
    response = await client.post(
        "/intake-output/records",
        json={"patientId": "PID2", "bedNumber": "B-204", "entries": ENTRIES},
    )

    payload = response.json()
    assert response.status_code == 200
    assert payload["patientId"] == "PID2"
    assert payload["entryCount"] == 2
    assert payload["totals"]["balance"] == 240.0
    assert payload["submittedAt"]


@pytest.mark.anyio("asyncio")
async def test_record_without_entries_is_rejected(client: AsyncClient) -> None:
    response = await client.post(
        "/intake-output/records", json={"patientId": "PID2", "entries": []}
    )

    assert response.status_code == 422
    assert response.headers["content-type"].startswith("application/problem+json")
