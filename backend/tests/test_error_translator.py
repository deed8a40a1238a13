"""
Error translator: YAML patterns, first match wins, $1 substitution, generic fallback.
"""
from pathlib import Path

import pytest
from sqlalchemy.exc import IntegrityError

from bapp import crud
from bapp.services.error_translator import (
    GENERIC_MESSAGE,
    _load_translations,
    compile_translations,
    translate_error,
)


def test_sqlite_unique_customer_name():
    t = translate_error("UNIQUE constraint failed: customers.name")
    assert t.code == "CUSTOMER_DUPLICATE_NAME"
    assert t.original_message == "UNIQUE constraint failed: customers.name"


def test_postgres_area_code_is_more_specific_than_generic_duplicate():
    t = translate_error('duplicate key value violates unique constraint "areas_customer_id_code_key"')
    assert t.code == "AREA_DUPLICATE_CODE"
    t = translate_error('duplicate key value violates unique constraint "uq_monthly_progress_period"')
    assert t.code == "DUPLICATE_KEY"


def test_not_null_message_names_the_column():
    t = translate_error('null value in column "name" of relation "customers" violates not-null constraint')
    assert t.code == "REQUIRED_FIELD"
    assert t.message == "Field name wajib diisi dan tidak boleh kosong."
    t = translate_error("NOT NULL constraint failed: bapp_contracts.invoice_type")
    assert t.message == "Field invoice_type wajib diisi dan tidak boleh kosong."


def test_check_constraint_on_invoice_type():
    t = translate_error('new row violates check constraint "bapp_contracts_invoice_type_check"')
    assert t.code == "INVALID_INVOICE_TYPE"


def test_exception_objects_and_fallback():
    assert translate_error(ConnectionError("connection refused")).code == "NETWORK_ERROR"
    t = translate_error(RuntimeError("something odd"))
    assert t.message == GENERIC_MESSAGE
    assert t.code is None
    assert translate_error(None).original_message == "Unknown error"


def test_missing_yaml_uses_builtin_defaults(tmp_path):
    entries = _load_translations(tmp_path / "missing.yaml")
    t = translate_error("UNIQUE constraint failed: areas.code", compile_translations(entries))
    assert t.code == "DUPLICATE_KEY"


def test_yaml_file_is_loaded_in_order(tmp_path):
    path = tmp_path / "messages.yaml"
    path.write_text(
        "translations:\n"
        "  - pattern: 'kontrak (\\d+)'\n"
        "    message: 'Kontrak $1 bermasalah'\n"
        "    code: CUSTOM\n"
        "  - pattern: 'kontrak'\n"
        "    message: 'tidak dipakai'\n",
        encoding="utf-8",
    )
    t = translate_error("gagal simpan kontrak 42", compile_translations(_load_translations(path)))
    assert (t.message, t.code) == ("Kontrak 42 bermasalah", "CUSTOM")


@pytest.mark.asyncio
async def test_real_integrity_error_from_database(async_session):
    async with async_session() as db:
        await crud.create_customer(db, "PT Sinar Abadi")
        with pytest.raises(IntegrityError) as info:
            await crud.create_customer(db, "PT Sinar Abadi")
    t = translate_error(info.value)
    assert t.code == "CUSTOMER_DUPLICATE_NAME"
    assert "customers.name" in t.original_message
