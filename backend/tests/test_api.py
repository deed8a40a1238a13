"""
HTTP smoke tests through FastAPI's TestClient against a temp-file SQLite DB.
The lifespan (scheduler) is not started: the client is used without a context manager.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from bapp.database import Base, get_db, get_session_factory
from bapp.main import app
import bapp.models  # noqa: F401


@pytest.fixture
def client(tmp_path):
    db_path = (tmp_path / "api.db").as_posix()
    sync_engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()

    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    async def override_get_db():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: factory
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create_contract(client, **overrides):
    body = {
        "name": "Sewa Genset",
        "period": "Per 1 Bulan",
        "invoice_type": "Pusat",
        "year": 2025,
        "customer_name": "PT Sinar Abadi",
        "area_name": "Jakarta",
        "signatures": [{"name": "Manager Area", "role": "Manager"}, {"name": "Finance", "role": "Finance"}],
    }
    body.update(overrides)
    r = client.post("/api/contracts", json=body)
    assert r.status_code == 201, r.text
    return r.json()


def test_create_contract_and_record_progress(client):
    contract = _create_contract(client)
    assert len(contract["monthly_progress"]) == 12
    assert contract["yearly_status"] == "not_started"
    sig_ids = [s["id"] for s in contract["signatures"]]

    r = client.put(
        f"/api/contracts/{contract['id']}/progress",
        json={
            "month": 3,
            "year": 2025,
            "is_upload_completed": True,
            "signatures": [{"signature_id": sig_ids[0], "is_completed": False}, {"signature_id": sig_ids[1], "is_completed": True}],
        },
        headers={"X-User-Email": "admin@example.com"},
    )
    assert r.status_code == 200, r.text
    period = r.json()
    # 2 signatures + upload, 2 of 3 done
    assert period["percentage"] == 67
    assert period["completed_items"] == 2

    r = client.get("/api/dashboard", params={"year": 2025})
    assert r.status_code == 200
    tree = r.json()
    assert tree[0]["name"] == "PT Sinar Abadi"
    assert tree[0]["areas"][0]["contracts"][0]["yearly_status"] == "in_progress"


def test_second_sub_period_needs_half_month_contract(client):
    contract = _create_contract(client)
    r = client.put(f"/api/contracts/{contract['id']}/progress", json={"month": 1, "year": 2025, "sub_period": 2})
    assert r.status_code == 400


def test_plan_then_migrate_period(client):
    contract = _create_contract(client)
    cid = contract["id"]
    sig_ids = [s["id"] for s in contract["signatures"]]
    client.put(
        f"/api/contracts/{cid}/progress",
        json={"month": 2, "year": 2025, "is_upload_completed": True,
              "signatures": [{"signature_id": i, "is_completed": True} for i in sig_ids]},
    )

    r = client.post(f"/api/contracts/{cid}/period/plan", json={"year": 2025, "new_period": 3})
    assert r.status_code == 200, r.text
    plan = r.json()
    assert plan["direction"] == "up"
    assert plan["config"]["merge_config"][0]["target_month"] == 3
    assert plan["config"]["merge_config"][0]["source_month"] == 2

    r = client.post(f"/api/contracts/{cid}/period", json=plan["config"])
    assert r.status_code == 200, r.text
    result = r.json()
    assert result["period"] == "Per 3 Bulan"
    by_month = {p["month"]: p["percentage"] for p in result["contract"]["monthly_progress"]}
    assert by_month[3] == 100
    assert by_month[2] == 0


def test_migrate_rejects_unsupported_period(client):
    contract = _create_contract(client)
    r = client.post(f"/api/contracts/{contract['id']}/period", json={"year": 2025, "new_period": 5})
    assert r.status_code == 422
    r = client.post("/api/contracts/9999/period", json={"year": 2025, "new_period": 3})
    assert r.status_code == 404


def test_duplicate_customer_is_translated(client):
    assert client.post("/api/customers", json={"name": "PT Sinar Abadi"}).status_code == 201
    r = client.post("/api/customers", json={"name": "PT Sinar Abadi"})
    assert r.status_code == 409
    body = r.json()
    assert body["code"] == "CUSTOMER_DUPLICATE_NAME"
    assert body["detail"].startswith("Customer dengan nama yang sama")


def test_export_returns_workbook(client):
    _create_contract(client)
    r = client.get("/api/reports/export", params={"year": 2025})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")
    assert "BAPP_Progress_2025_" in r.headers["content-disposition"]
    assert r.content[:2] == b"PK"


def test_import_between_years(client):
    source = _create_contract(client, year=2024)
    r = client.get("/api/imports/contracts", params={"year": 2024})
    assert [(c["name"], c["signature_count"]) for c in r.json()] == [("Sewa Genset", 2)]

    r = client.post("/api/imports", json={"source_year": 2024, "target_year": 2025, "contract_ids": [source["id"]]})
    assert r.status_code == 200, r.text
    assert r.json()["success"] == 1
    r = client.post("/api/imports", json={"source_year": 2024, "target_year": 2025, "contract_ids": [source["id"]]})
    assert r.json()["skipped"] == 1
    assert client.post("/api/imports", json={"source_year": 2024, "target_year": 2024, "contract_ids": [source["id"]]}).status_code == 400


def test_batch_complete_checks_sub_period_against_cadence(client):
    contract = _create_contract(client)
    url = f"/api/contracts/{contract['id']}/progress/batch"
    r = client.post(url, json={"year": 2025, "periods": [{"month": 3, "sub_period": 2}]})
    assert r.status_code == 400
    r = client.post(url, json={"year": 2025, "periods": [{"month": 3}], "include_upload": True})
    assert r.status_code == 200
    assert r.json()["success"] == 1
