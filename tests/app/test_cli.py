from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING

import pytest

from enrollcheck.domain.model import DocumentRecord, EntityKind
from enrollcheck.ui import cli as cli_module
from tests.support.enrollments import SNAKE_ADDRESS, SNAKE_PERSONAL, enrollment_row

if TYPE_CHECKING:
    from pathlib import Path

    from enrollcheck.adapters.sqlalchemy import SqlAlchemyRecordStore


@pytest.fixture(autouse=True)
def _single_attempt(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENROLLCHECK_RETRY_ATTEMPTS", "1")


@pytest.fixture
def seeded(sql_store: SqlAlchemyRecordStore) -> SqlAlchemyRecordStore:
    asyncio.run(
        sql_store.create(
            EntityKind.ENROLLMENTS,
            enrollment_row(personal=SNAKE_PERSONAL, address=SNAKE_ADDRESS),
        )
    )
    return sql_store


def _process(capsys: pytest.CaptureFixture[str]) -> dict[str, object]:
    cli_module.main(["process", "enr-1"])
    return json.loads(capsys.readouterr().out)


def test_process_prints_summary(
    seeded: SqlAlchemyRecordStore, capsys: pytest.CaptureFixture[str]
) -> None:
    summary = _process(capsys)

    assert summary["enrollment_id"] == "enr-1"
    assert set(summary["written"]) == {"personal_data", "addresses"}  # type: ignore[arg-type]
    assert summary["skipped"] == ["schooling_data"]
    assert summary["attempts"] == 1


def test_show_then_save_edited_record(
    seeded: SqlAlchemyRecordStore, capsys: pytest.CaptureFixture[str], tmp_path: Path
) -> None:
    summary = _process(capsys)
    seed = summary["written"]["personal_data"]  # type: ignore[index]

    cli_module.main(["show", seed])
    shown = json.loads(capsys.readouterr().out)
    shown["email"] = "ana.souza@example.com"
    edited_file = tmp_path / "edited.json"
    edited_file.write_text(json.dumps(shown), encoding="utf-8")

    cli_module.main(["save", seed, "--file", str(edited_file)])

    personal = asyncio.run(seeded.get_one(EntityKind.PERSONAL_DATA, seed))
    assert personal["email"] == "ana.souza@example.com"
    assert personal["nome_completo"] == "Ana Souza"


def test_documents_without_linkage(
    sql_store: SqlAlchemyRecordStore, capsys: pytest.CaptureFixture[str]
) -> None:
    cli_module.main(["documents", "nobody"])

    assert "No enrollment linkage found" in capsys.readouterr().out


def test_documents_are_grouped_and_signed(
    sql_store: SqlAlchemyRecordStore,
    capsys: pytest.CaptureFixture[str],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    for name, kind in (("rg.pdf", "rg_frente"), ("extra.pdf", None)):
        asyncio.run(
            sql_store.create(
                EntityKind.DOCUMENT_EXTRACTIONS,
                {
                    "enrollment_id": "enr-9",
                    "file_name": name,
                    "storage_path": f"enr-9/{name}",
                    "document_type": kind,
                    "status": "processed",
                },
            )
        )

    async def fake_sign(document: DocumentRecord) -> str:
        return f"https://files.test/{document.storage_path}"

    monkeypatch.setattr(cli_module, "sign_document", fake_sign)

    cli_module.main(["documents", "enr-9", "--sign"])

    out = capsys.readouterr().out
    assert "RG - Frente:" in out
    assert "Outros Documentos:" in out
    assert "  - rg.pdf [processed] https://files.test/enr-9/rg.pdf" in out


def test_blank_identifier_exits_with_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["process", "   "])

    assert excinfo.value.code == 2


def test_unreadable_edit_file_exits_with_usage_error(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["save", "pd-1", "--file", str(tmp_path / "missing.json")])

    assert excinfo.value.code == 2


def test_missing_enrollment_is_fatal(sql_store: SqlAlchemyRecordStore) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["process", "enr-404"])

    assert excinfo.value.code == 1


def test_unknown_backend_is_a_configuration_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENROLLCHECK_BACKEND", "mongo")

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["process", "enr-1"])

    assert excinfo.value.code == 2
