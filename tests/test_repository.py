from __future__ import annotations

import pytest

from nbi_sites.models import ProblemReport, ReportStatus, Site
from nbi_sites.repository import ReportRepo, SiteRepo


def _report(report_id: str, site: str = "NYC") -> ProblemReport:
    return ProblemReport(id=report_id, site_name=site, ticket_id=f"T-{report_id}", status=ReportStatus.UP)


def test_add_update_keep_order_and_bump_version() -> None:
    repo = ReportRepo([_report("1"), _report("2")])
    assert repo.version == 0

    repo.add(_report("3"))
    repo.update(_report("1", site="Edited"))

    assert repo.ids() == ["1", "2", "3"]
    assert repo.get("1").site_name == "Edited"
    assert repo.version == 2


def test_add_duplicate_and_update_unknown() -> None:
    repo = ReportRepo([_report("1")])
    with pytest.raises(ValueError):
        repo.add(_report("1"))
    with pytest.raises(KeyError):
        repo.update(_report("9"))
    assert repo.version == 0


def test_remove_exactly_one_and_unknown_is_noop() -> None:
    repo = ReportRepo([_report("1"), _report("2"), _report("3")])
    assert repo.remove("2") is True
    assert repo.ids() == ["1", "3"]

    version = repo.version
    assert repo.remove("nope") is False
    assert repo.ids() == ["1", "3"]
    assert repo.version == version


def test_replace_all_and_extend() -> None:
    repo = ReportRepo([_report("1")])
    repo.replace_all([_report("a"), _report("b")])
    assert repo.ids() == ["a", "b"]

    repo.extend([_report("c")])
    assert repo.ids() == ["a", "b", "c"]


def test_extend_with_colliding_id_changes_nothing() -> None:
    repo = ReportRepo([_report("1")])
    version = repo.version
    with pytest.raises(ValueError):
        repo.extend([_report("2"), _report("1")])
    assert repo.ids() == ["1"]
    assert repo.version == version


def test_replace_all_rejects_duplicates_without_touching_current() -> None:
    repo = ReportRepo([_report("1")])
    with pytest.raises(ValueError):
        repo.replace_all([_report("x"), _report("x")])
    assert repo.ids() == ["1"]


def test_snapshot_is_a_copy() -> None:
    repo = ReportRepo([_report("1")])
    snap = repo.snapshot()
    snap.clear()
    assert len(repo) == 1
    assert "1" in repo


def test_clear_all() -> None:
    repo = ReportRepo([_report("1")])
    repo.clear_all()
    assert len(repo) == 0
    assert repo.version == 1


def test_site_search() -> None:
    repo = SiteRepo(
        [
            Site(id="1", site_location_name="New York HQ", device_name="NYC-RTR-01", sdwan_site_id="NYC-001", lan_ip="10.1.1.1"),
            Site(id="2", site_location_name="London Office", device_name="LDN-RTR-01", sdwan_site_id="LDN-002", lan_ip="10.2.1.1"),
        ]
    )
    assert [s.id for s in repo.search("")] == ["1", "2"]
    assert [s.id for s in repo.search("london")] == ["2"]
    assert [s.id for s in repo.search("rtr")] == ["1", "2"]
    assert [s.id for s in repo.search("10.1.")] == ["1"]
    assert repo.search("tokyo") == []
