"""Shared fixtures: in-memory SQLite (aiosqlite) for single-session tests, a temp file for concurrent sessions."""
from typing import List, Optional
import pytest
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from bapp.database import Base
import bapp.models  # noqa: F401
from bapp import crud
from bapp.schemas import ContractCreate, SignatureIn, SignatureStatus


@pytest.fixture
async def async_session():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    yield factory
    await engine.dispose()


@pytest.fixture
async def file_session_factory(tmp_path):
    """One connection per session, for code that runs several sessions concurrently."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{(tmp_path / 'bapp_test.db').as_posix()}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    yield factory
    await engine.dispose()


async def seed_contract(
    db: AsyncSession,
    name: str = "Sewa Genset",
    period: str = "Per 1 Bulan",
    signatures: Optional[List[str]] = None,
    year: int = 2025,
    customer: str = "PT Sinar Abadi",
    area: str = "Jakarta",
    invoice_type: str = "Pusat",
):
    roster = signatures if signatures is not None else ["Manager Area", "Supervisor", "Finance"]
    contract = await crud.create_contract(
        db,
        ContractCreate(
            name=name,
            period=period,
            invoice_type=invoice_type,
            year=year,
            customer_name=customer,
            area_name=area,
            signatures=[SignatureIn(name=n, role=f"Role {n}") for n in roster],
        ),
    )
    sigs = await crud.list_signatures(db, contract.id)
    return contract, sigs


async def record_progress(
    db: AsyncSession,
    contract,
    sigs,
    month: int,
    completed: int = 0,
    upload: bool = False,
    sub_period: int = 1,
    notes: Optional[str] = None,
    upload_link: Optional[str] = None,
    year: int = 2025,
):
    """Complete the first `completed` signatures of one period."""
    return await crud.update_monthly_progress(
        db,
        contract.id,
        month=month,
        year=year,
        sub_period=sub_period,
        upload_link=upload_link,
        is_upload_completed=upload,
        notes=notes,
        statuses=[SignatureStatus(signature_id=s.id, is_completed=i < completed) for i, s in enumerate(sigs)],
    )
