from __future__ import annotations

import pytest

from services.update import VersionParseError, is_version_newer, parse_release_tag, parse_version


def test_versions_order_numerically() -> None:
    assert parse_version("0.9.0") < parse_version("0.10.5") < parse_version("0.11.1")
    assert is_version_newer(parse_version("0.10.5"), parse_version("0.11.1"))
    assert not is_version_newer(parse_version("0.11.1"), parse_version("0.9.0"))
    assert not is_version_newer(parse_version("1.0.0"), parse_version("1.0.0"))


def test_prerelease_sorts_before_release() -> None:
    assert parse_version("1.0.0-alpha") < parse_version("1.0.0-beta.2") < parse_version("1.0.0-rc.1")
    assert parse_version("1.0.0-rc.1") < parse_version("1.0.0")


def test_prerelease_identifiers_follow_semver_precedence() -> None:
    chain = [
        "1.0.0-alpha",
        "1.0.0-alpha.1",
        "1.0.0-alpha.beta",
        "1.0.0-beta",
        "1.0.0-beta.2",
        "1.0.0-beta.11",
        "1.0.0-rc.1",
        "1.0.0",
    ]
    versions = [parse_version(text) for text in chain]

    assert versions == sorted(versions)
    for older, newer in zip(versions, versions[1:]):
        assert older < newer
        assert is_version_newer(older, newer)


def test_numeric_prerelease_is_older_than_release() -> None:
    assert parse_version("1.0.0-1") < parse_version("1.0.0")
    assert parse_version("1.0.0-1") < parse_version("1.0.0-alpha")
    assert not is_version_newer(parse_version("1.0.0"), parse_version("1.0.0-1"))


def test_mixed_prerelease_identifiers_are_accepted() -> None:
    version = parse_version("1.0.0-x.7.z.92")

    assert str(version) == "1.0.0-x.7.z.92"
    assert version < parse_version("1.0.0")
    assert parse_version("1.0.0-x.7.z.92") == version


def test_build_metadata_is_ignored_for_comparison() -> None:
    with_build = parse_version("1.2.3+20240501")

    assert with_build == parse_version("1.2.3")
    assert str(with_build) == "1.2.3+20240501"


@pytest.mark.parametrize("text", ["1.2", "01.2.3", "v1.2.3", "1.2.3.4", "", "latest"])
def test_invalid_versions_are_rejected(text: str) -> None:
    with pytest.raises(VersionParseError):
        parse_version(text)


def test_version_parse_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        parse_version("nope")


def test_release_tags_may_start_with_v() -> None:
    assert parse_release_tag("v0.3.1") == parse_version("0.3.1")
    assert str(parse_release_tag("0.3.1")) == "0.3.1"
    with pytest.raises(VersionParseError):
        parse_release_tag("vv0.3.1")
