import pytest

from mcp_env_provisioner.errors import UnresolvedVersion
from mcp_env_provisioner.versions import (
    ReleaseCatalog,
    compare_versions,
    resolve_version,
    sort_versions,
)
from mcp_env_provisioner.versions.ordering import branch_of, split_version

from conftest import PYTHON_311_URL


def test_sort_versions_numeric():
    """Segments compare as integers, not strings"""
    assert sort_versions(["1.2", "1.10", "1.9.1", "1.2"]) == ["1.10", "1.9.1", "1.2"]
    assert sort_versions(["2.10", "2.9"], newest_first=False) == ["2.9", "2.10"]


@pytest.mark.parametrize(
    "left,right,expected",
    [
        ("1.2", "1.2.0", 0),
        ("1.2", "1.2.1", -1),
        ("2.10", "2.9", 1),
        ("8", "17", -1),
        ("3.11.7", "3.11.7", 0),
    ],
)
def test_compare_versions(left, right, expected):
    assert compare_versions(left, right) == expected


def test_split_and_branch():
    assert split_version("3.11.7") == (3, 11, 7)
    assert split_version("7.4") == (7, 4)
    assert branch_of("3.11.7") == (3, 11)


def test_snapshot_is_sorted_and_immutable(snapshot):
    assert snapshot.versions("python") == ("3.12.1", "3.11.7", "3.11.6", "3.10.13")

    updated = snapshot.with_releases("python", ["3.13.0"])
    assert updated.versions("python") == ("3.13.0",)
    assert snapshot.versions("python")[0] == "3.12.1"
    with pytest.raises(TypeError):
        updated.releases["python"] = ()


@pytest.mark.parametrize("request_", ["", None, "latest", "stable", "current", "whatever"])
def test_newest_for_default_requests(snapshot, request_):
    assert resolve_version(snapshot, "python", request_).version == "3.12.1"


def test_exact_version_verbatim(snapshot):
    resolved = resolve_version(snapshot, "python", "3.11.7")
    assert resolved.version == "3.11.7"
    assert resolved.binary_url == PYTHON_311_URL

    unknown = resolve_version(snapshot, "python", "3.11.2")
    assert unknown.version == "3.11.2"
    assert unknown.binary_url is None


def test_partial_version_picks_newest_match(snapshot):
    resolved = resolve_version(snapshot, "python", "3.11")
    assert resolved.version == "3.11.7"
    assert resolved.binary_url == PYTHON_311_URL
    assert resolve_version(snapshot, "python", "3").version == "3.12.1"


def test_partial_version_matches_whole_segments():
    snapshot = ReleaseCatalog().with_releases("python", ["3.11.0"])
    resolved = resolve_version(snapshot, "python", "3.1")
    assert resolved.version == "3.1:latest"


def test_partial_version_without_match_is_sentinel(snapshot):
    resolved = resolve_version(snapshot, "python", "3.9")
    assert resolved.version == "3.9:latest"
    assert resolved.name == "3.9"
    assert resolved.is_sentinel
    assert resolved.binary_url is None


@pytest.mark.parametrize("request_", ["lts", "security", "LTS"])
def test_lts_is_previous_branch(snapshot, request_):
    resolved = resolve_version(snapshot, "python", request_)
    assert resolved.version == "3.11.7"
    assert branch_of(resolved.version) != branch_of(snapshot.versions("python")[0])


def test_lts_falls_back_to_stable_with_one_branch():
    snapshot = ReleaseCatalog().with_releases("python", ["3.12.0", "3.12.1"])
    assert resolve_version(snapshot, "python", "lts").version == "3.12.1"


def test_tag_prefix_is_stripped(snapshot):
    assert resolve_version(snapshot, "ruby", "ruby-3.2", "ruby-").version == "3.2.2"


def test_resolution_is_deterministic(snapshot):
    for request_ in ["", "lts", "3.11", "3.9", "3.11.7"]:
        first = resolve_version(snapshot, "python", request_)
        assert all(resolve_version(snapshot, "python", request_) == first for _ in range(5))


@pytest.mark.parametrize("request_", ["", "lts", "latest"])
def test_empty_catalog_raises(request_):
    with pytest.raises(UnresolvedVersion) as exc:
        resolve_version(ReleaseCatalog(), "python", request_)
    assert exc.value.ecosystem == "python"


def test_empty_catalog_still_resolves_explicit_requests():
    empty = ReleaseCatalog()
    assert resolve_version(empty, "python", "3.11.2").version == "3.11.2"
    assert resolve_version(empty, "python", "3.11").version == "3.11:latest"


def test_version_catalog_resolve_uses_tag_prefix():
    from mcp_env_provisioner.versions import DEFAULT_SOURCES, VersionCatalog

    catalog = VersionCatalog(
        sources={"ruby": DEFAULT_SOURCES["ruby"]},
        snapshot=ReleaseCatalog().with_releases("ruby", ["3.3.0", "3.2.2"]),
    )
    assert catalog.resolve("ruby", "ruby-3.2").version == "3.2.2"
    assert catalog.supported_versions() == {"ruby": ["3.3.0", "3.2.2"]}
