import json

import pytest

from job_harvest.cli import main
from job_harvest.publish import compute_checksum


@pytest.fixture
def env(tmp_path, monkeypatch):
    page = tmp_path / "index.html"
    page.write_text(
        '<a href="notice-1.pdf">Notice 1</a><a href="notice-2.pdf">Notice 2</a><a href="">Apply</a>',
        encoding="utf-8",
    )
    monkeypatch.setenv("TARGET_URL", page.as_uri())
    monkeypatch.setenv("DB_PATH", str(tmp_path / "jobs.db"))
    monkeypatch.setenv("METADATA_PATH", str(tmp_path / "metadata.json"))
    monkeypatch.setenv("SNAPSHOT_PATH", str(tmp_path / "data" / "jobs.json"))
    monkeypatch.setenv("RETRY_DELAY_SECONDS", "0")
    for key in ("PROXY_URL", "PROXY_LIST_URL", "FETCH_MODE", "EXTRA_HEADERS", "EXPORT_JSON"):
        monkeypatch.delenv(key, raising=False)
    return tmp_path


def test_run_against_local_file_succeeds(env, capsys) -> None:
    assert main(["run"]) == 0

    metadata = json.loads((env / "metadata.json").read_text(encoding="utf-8"))
    assert metadata["job_count"] == 2
    assert (env / "data" / "jobs.json").exists()
    assert "job_count=2" in capsys.readouterr().out


def test_run_no_export_skips_snapshot(env) -> None:
    assert main(["run", "--no-export"]) == 0
    assert not (env / "data" / "jobs.json").exists()


def test_run_with_invalid_target_exits_non_zero(env) -> None:
    assert main(["run", "--target", "mailto:jobs@example.test"]) == 1
    assert not (env / "metadata.json").exists()


def test_run_with_corrupt_store_exits_non_zero(env) -> None:
    (env / "jobs.db").write_bytes(b"garbage" * 1000)
    assert main(["run"]) == 1


def test_invalid_config_exits_non_zero(env, monkeypatch) -> None:
    monkeypatch.setenv("MAX_RETRIES", "-2")
    assert main(["run"]) == 1


def test_healthcheck_reports_store(env, capsys) -> None:
    assert main(["healthcheck"]) == 0
    assert "healthcheck passed" in capsys.readouterr().out


def test_healthcheck_after_run_keeps_published_checksum(env, capsys) -> None:
    assert main(["run"]) == 0
    metadata = json.loads((env / "metadata.json").read_text(encoding="utf-8"))

    assert main(["healthcheck"]) == 0

    assert compute_checksum(env / "jobs.db") == metadata["checksum"]
    assert "2 jobs" in capsys.readouterr().out


def test_healthcheck_reports_corrupt_store(env, capsys) -> None:
    (env / "jobs.db").write_bytes(b"garbage" * 1000)
    assert main(["healthcheck"]) == 1
    assert "job store check failed" in capsys.readouterr().out


def test_run_against_latin1_page_is_not_fatal(env) -> None:
    page = env / "index.html"
    page.write_bytes('<a href="avis.pdf">Avis de recrutement \xe9t\xe9</a>'.encode("latin-1"))

    assert main(["run"]) == 0

    metadata = json.loads((env / "metadata.json").read_text(encoding="utf-8"))
    assert metadata["job_count"] == 1
    assert metadata["checksum"] == compute_checksum(env / "jobs.db")
