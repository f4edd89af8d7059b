from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from commit_harvester.main import default_cursor, main
from tests._fixtures.bitbucket_fake import FakeBitbucket, patch_url, wire_commit, wire_repository


def single_repo_fake(commits: int = 3) -> FakeBitbucket:
    return FakeBitbucket(
        repositories=[wire_repository("acme/widgets")],
        commits={"acme/widgets": [wire_commit("acme/widgets", f"c{i}") for i in range(commits)]},
    )


def output_files(directory) -> list:
    return sorted(directory.glob("commits_*.jsonl"))


def test_small_run_writes_every_commit_and_prints_filename(tmp_path, capsys) -> None:
    fake = single_repo_fake()

    code = main(["--total", "5", "--page-size", "10", "--output-dir", str(tmp_path)], transport=fake.transport)

    assert code == 0
    [artifact] = output_files(tmp_path)
    lines = artifact.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 3
    for line in lines:
        record = json.loads(line)
        assert set(record) == {
            "hash", "author_name", "date", "message", "patch_link", "commit_url",
            "repository_link", "project_key", "project_name", "project_url",
        }
    assert capsys.readouterr().out.strip() == str(artifact)


def test_listing_failure_exits_non_zero_without_output(tmp_path) -> None:
    fake = FakeBitbucket(listing_status=500)

    code = main(["--total", "5", "--output-dir", str(tmp_path)], transport=fake.transport)

    assert code == 1
    assert output_files(tmp_path) == []


@pytest.mark.parametrize("total", ["0", "-3"])
def test_non_positive_total_is_rejected_before_any_request(tmp_path, total: str) -> None:
    fake = single_repo_fake()

    with pytest.raises(SystemExit) as excinfo:
        main(["--total", total, "--output-dir", str(tmp_path)], transport=fake.transport)

    assert excinfo.value.code != 0
    assert fake.requests == []
    assert output_files(tmp_path) == []


def test_invalid_date_is_rejected(tmp_path) -> None:
    fake = single_repo_fake()

    with pytest.raises(SystemExit):
        main(["--date", "last tuesday", "--output-dir", str(tmp_path)], transport=fake.transport)

    assert fake.requests == []


def test_date_flag_is_sent_as_after_cursor(tmp_path) -> None:
    fake = single_repo_fake()

    main(["--date", "2024-12-12T00:00:00+00:00", "--output-dir", str(tmp_path)], transport=fake.transport)

    listing = fake.requests[0]
    assert listing.url.path == "/2.0/repositories"
    assert listing.url.params["after"] == "2024-12-12T00:00:00+00:00"


def test_missing_flags_use_defaults(tmp_path) -> None:
    fake = single_repo_fake()

    assert main(["--output-dir", str(tmp_path)], transport=fake.transport) == 0

    listing = fake.requests[0]
    assert listing.url.params["pagelen"] == "100"
    cursor = datetime.fromisoformat(listing.url.params["after"])
    age = datetime.now(tz=timezone.utc) - cursor
    assert 85 <= age.days <= 93


def test_enrichment_drops_commit_whose_patch_is_missing(tmp_path) -> None:
    fake = single_repo_fake()
    fake.patches = {
        patch_url("acme/widgets", "c0"): (200, "+ url = 'https://hooks.acme.io/x'\n"),
        patch_url("acme/widgets", "c1"): (404, "not found"),
        patch_url("acme/widgets", "c2"): (200, "no hosts here\n"),
    }

    code = main(["--enrich", "--output-dir", str(tmp_path)], transport=fake.transport)

    assert code == 0
    [artifact] = output_files(tmp_path)
    records = [json.loads(line) for line in artifact.read_text(encoding="utf-8").splitlines()]
    assert [r["hash"] for r in records] == ["c0", "c2"]
    assert records[0]["subdomains"] == ["hooks.acme.io"]
    assert records[1]["subdomains"] == []


def test_invalid_environment_exits_non_zero(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("HARVEST_PAGE_SIZE", "lots")
    fake = single_repo_fake()

    assert main(["--output-dir", str(tmp_path)], transport=fake.transport) == 1
    assert fake.requests == []


def test_default_cursor_is_three_months_back() -> None:
    assert default_cursor(datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)) == "2026-07-19T12:00:00.000000+00:00"
    assert default_cursor(datetime(2026, 5, 31, tzinfo=timezone.utc)) == "2026-02-28T00:00:00.000000+00:00"
    assert default_cursor(datetime(2026, 2, 10, tzinfo=timezone.utc)) == "2025-11-10T00:00:00.000000+00:00"
