from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from importflow.app import WorkflowRun
from importflow.domain.commit import CommitResult
from importflow.domain.errors import UnsupportedDocumentError
from importflow.domain.workflow import WorkflowState
from importflow.ui import cli as cli_module

if TYPE_CHECKING:
    from pathlib import Path


def _document(tmp_path: Path) -> Path:
    path = tmp_path / "cba.txt"
    path.write_text("ARTICLE 1", encoding="utf-8")
    return path


def _import_args(tmp_path: Path) -> list[str]:
    document = str(_document(tmp_path))
    return ["agreement-import", document, "--agreement-id", "a", "--company-id", "c"]


def test_agreement_import_passes_flags(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    captured: dict[str, object] = {}

    async def fake_run(document: Path, **kwargs: object) -> WorkflowRun:
        captured["document"] = document
        captured.update(kwargs)
        return WorkflowRun(state=WorkflowState.DONE, result=CommitResult(created=1), committed=True)

    monkeypatch.setattr(cli_module, "run_agreement_import", fake_run)
    document = _document(tmp_path)

    cli_module.main(
        [
            "agreement-import",
            str(document),
            "--agreement-id",
            "agr-1",
            "--company-id",
            "co-1",
            "--exclude",
            "2",
            "--exclude",
            "5",
        ]
    )

    assert captured["document"] == document
    assert captured["agreement_id"] == "agr-1"
    assert captured["company_id"] == "co-1"
    assert captured["exclude"] == ["2", "5"]
    assert captured["dry_run"] is False


def test_registry_sync_passes_flags(monkeypatch: pytest.MonkeyPatch, registry_path: Path) -> None:
    captured: dict[str, object] = {}

    async def fake_run(registry: object, **kwargs: object) -> WorkflowRun:
        captured["registry"] = registry
        captured.update(kwargs)
        return WorkflowRun(state=WorkflowState.REVIEWING)

    monkeypatch.setattr(cli_module, "run_registry_sync", fake_run)

    cli_module.main(
        [
            "registry-sync",
            "--registry",
            str(registry_path),
            "--module",
            "workforce",
            "--release-id",
            "r-1",
            "--include-updates",
            "--dry-run",
        ]
    )

    assert captured["modules"] == ["workforce"]
    assert captured["release_id"] == "r-1"
    assert captured["include_updates"] is True
    assert captured["dry_run"] is True
    assert captured["exclude"] == []


def test_missing_document_is_a_usage_error(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(
            [
                "agreement-import",
                str(tmp_path / "missing.txt"),
                "--agreement-id",
                "a",
                "--company-id",
                "c",
            ]
        )

    assert excinfo.value.code == 2


def test_missing_required_option_is_a_usage_error(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["agreement-import", str(_document(tmp_path))])

    assert excinfo.value.code == 2


def test_unsupported_document_is_a_usage_error(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    async def fake_run(*_: object, **__: object) -> WorkflowRun:
        raise UnsupportedDocumentError("Unsupported document type '.pdf'")

    monkeypatch.setattr(cli_module, "run_agreement_import", fake_run)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(_import_args(tmp_path))

    assert excinfo.value.code == 2


@pytest.mark.parametrize(
    "run",
    [
        WorkflowRun(state=WorkflowState.FAILED, error="store offline"),
        WorkflowRun(state=WorkflowState.IDLE, error="analysis failed"),
    ],
)
def test_failed_runs_exit_with_one(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, run: WorkflowRun
) -> None:
    async def fake_run(*_: object, **__: object) -> WorkflowRun:
        return run

    monkeypatch.setattr(cli_module, "run_agreement_import", fake_run)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(_import_args(tmp_path))

    assert excinfo.value.code == 1


def test_unexpected_errors_exit_with_one(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    async def fake_run(*_: object, **__: object) -> WorkflowRun:
        raise RuntimeError("boom")

    monkeypatch.setattr(cli_module, "run_agreement_import", fake_run)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(_import_args(tmp_path))

    assert excinfo.value.code == 1
