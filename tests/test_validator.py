from __future__ import annotations

import os

import pytest

from structure_check.checklist import load_checklist
from structure_check.errors import (
    MalformedVersion,
    ManifestFieldMismatch,
    ManifestParseError,
    MissingArtifact,
)
from structure_check.validator import (
    check_auxiliary_scripts,
    check_core_files,
    check_manifest_fields,
    check_version_format,
    is_semver,
    read_version,
    validate,
    verify_manifest_fields,
)
from tests.utils.project_factory import AUXILIARY_SCRIPTS, EXPECTED_NAME, default_manifest, make_project


@pytest.fixture
def checklist():
    return load_checklist()


def test_complete_project_passes_every_check(tmp_path, checklist) -> None:
    root = make_project(tmp_path / "app")

    report = validate(root, checklist)

    assert report.overall_status == "pass"
    assert [check.name for check in report.checks] == [
        "core_files",
        "version_format",
        "manifest_fields",
        "auxiliary_scripts",
    ]
    assert all(check.status == "pass" for check in report.checks)
    assert report.to_dict()["totals"] == {"checks": 4, "failed": 0, "passed": 4, "warned": 0}


@pytest.mark.parametrize("value", ["0.0.0", "1.0.0", "10.20.30"])
def test_is_semver_accepts_three_numbers(value) -> None:
    assert is_semver(value)


@pytest.mark.parametrize("value", ["1.2", "v1.2.3", "1.2.3-beta", "1.2.3.4", "", " 1.2.3", None, 123])
def test_is_semver_rejects_other_shapes(value) -> None:
    assert not is_semver(value)


def test_version_is_trimmed_before_matching(tmp_path) -> None:
    (tmp_path / "VERSION").write_text("  2.4.6 \n\n", encoding="utf-8")
    assert read_version(tmp_path, "VERSION") == "2.4.6"


def test_short_version_fails_with_malformed_version(tmp_path, checklist) -> None:
    root = make_project(tmp_path, version="1.0")

    result = check_version_format(root, checklist)

    assert result.status == "fail"
    assert len(result.failures) == 1
    error = result.failures[0]
    assert isinstance(error, MalformedVersion)
    assert error.content == "1.0"
    assert error.path == "VERSION"


def test_missing_version_file_is_reported_by_core_and_version_checks(tmp_path, checklist) -> None:
    root = make_project(tmp_path, version=None)

    report = validate(root, checklist)

    core = report.get("core_files")
    assert core.status == "fail"
    assert [error.path for error in core.failures] == ["VERSION"]
    version = report.get("version_format")
    assert isinstance(version.failures[0], MissingArtifact)
    assert report.get("manifest_fields").status == "pass"


def test_every_missing_core_file_is_reported(tmp_path, checklist) -> None:
    result = check_core_files(tmp_path, checklist)

    assert result.status == "fail"
    assert [error.path for error in result.failures] == ["VERSION", "package.json", "README.md"]
    assert all(isinstance(error, MissingArtifact) for error in result.failures)


def test_manifest_without_scripts_fails_on_scripts_field(tmp_path, checklist) -> None:
    manifest = default_manifest()
    del manifest["scripts"]
    root = make_project(tmp_path, manifest=manifest)

    result = check_manifest_fields(root, checklist)

    assert result.status == "fail"
    error = result.failures[0]
    assert isinstance(error, ManifestFieldMismatch)
    assert error.field == "scripts"
    assert error.actual is None
    assert "`scripts`" in str(error)


def test_manifest_with_empty_scripts_table_fails(tmp_path, checklist) -> None:
    root = make_project(tmp_path, manifest=default_manifest(scripts={}))

    result = check_manifest_fields(root, checklist)

    assert result.failures[0].field == "scripts"


def test_manifest_name_must_match_exactly() -> None:
    with pytest.raises(ManifestFieldMismatch) as excinfo:
        verify_manifest_fields(default_manifest(name="bun-app"), EXPECTED_NAME)

    assert excinfo.value.field == "name"
    assert excinfo.value.expected == EXPECTED_NAME
    assert excinfo.value.actual == "bun-app"


def test_manifest_reports_first_failing_field_only() -> None:
    manifest = default_manifest(version="1.0.0-rc1", description="")

    with pytest.raises(ManifestFieldMismatch) as excinfo:
        verify_manifest_fields(manifest, EXPECTED_NAME)

    assert excinfo.value.field == "version"
    assert excinfo.value.actual == "1.0.0-rc1"


@pytest.mark.parametrize("description", ["", None, 7, ["x"]])
def test_manifest_description_must_be_a_non_empty_string(description) -> None:
    with pytest.raises(ManifestFieldMismatch) as excinfo:
        verify_manifest_fields(default_manifest(description=description), EXPECTED_NAME)

    assert excinfo.value.field == "description"


def test_invalid_manifest_json_is_a_parse_error(tmp_path, checklist) -> None:
    root = make_project(tmp_path, manifest="{not json")

    result = check_manifest_fields(root, checklist)

    assert result.status == "fail"
    error = result.failures[0]
    assert isinstance(error, ManifestParseError)
    assert error.path == "package.json"


def test_non_object_manifest_is_a_parse_error(tmp_path, checklist) -> None:
    root = make_project(tmp_path, manifest='["name"]')

    result = check_manifest_fields(root, checklist)

    assert isinstance(result.failures[0], ManifestParseError)
    assert "list" in result.failures[0].detail


def test_missing_auxiliary_script_is_named(tmp_path, checklist) -> None:
    scripts = tuple(rel for rel in AUXILIARY_SCRIPTS if rel != "collaboration/collab-server.sh")
    root = make_project(tmp_path, scripts=scripts)

    result = check_auxiliary_scripts(root, checklist)

    assert result.status == "fail"
    assert [error.path for error in result.failures] == ["collaboration/collab-server.sh"]
    assert "collaboration/collab-server.sh" in result.errors[0]


def test_all_missing_auxiliary_scripts_are_reported(tmp_path, checklist) -> None:
    root = make_project(tmp_path, scripts=())

    result = check_auxiliary_scripts(root, checklist)

    assert [error.path for error in result.failures] == list(AUXILIARY_SCRIPTS)


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
def test_non_executable_scripts_warn_and_fail_under_strict(tmp_path, checklist) -> None:
    root = make_project(tmp_path, executable=False)

    relaxed = check_auxiliary_scripts(root, checklist)
    assert relaxed.status == "warn"
    assert len(relaxed.warnings) == len(AUXILIARY_SCRIPTS)
    assert relaxed.failures == []

    strict = check_auxiliary_scripts(root, checklist, strict_mode=True)
    assert strict.status == "fail"
    assert strict.to_dict()["errors"] == ["Strict mode escalated warnings to failure."]


def test_manifest_version_drift_from_version_file_warns(tmp_path, checklist) -> None:
    root = make_project(tmp_path, version="1.1.0\n")

    report = validate(root, checklist)

    manifest = report.get("manifest_fields")
    assert manifest.status == "warn"
    assert "does not match VERSION 1.1.0" in manifest.warnings[0]
    assert report.overall_status == "warn"

    strict_report = validate(root, checklist, strict_mode=True)
    assert strict_report.overall_status == "fail"


def test_failures_in_several_checks_are_all_reported(tmp_path, checklist) -> None:
    manifest = default_manifest()
    del manifest["scripts"]
    root = make_project(tmp_path, version="v1.0.0", manifest=manifest, readme=False, scripts=AUXILIARY_SCRIPTS[1:])

    report = validate(root, checklist)

    assert report.overall_status == "fail"
    assert [check.name for check in report.failed] == [
        "core_files",
        "version_format",
        "manifest_fields",
        "auxiliary_scripts",
    ]
    payload = report.to_dict()
    assert payload["checks"][1]["error_types"] == ["MalformedVersion"]
    assert payload["checks"][2]["error_types"] == ["ManifestFieldMismatch"]


def test_whitespace_description_counts_as_non_empty() -> None:
    verify_manifest_fields(default_manifest(description="   "), EXPECTED_NAME)


def test_undecodable_version_file_is_malformed(tmp_path, checklist) -> None:
    root = make_project(tmp_path)
    (root / "VERSION").write_bytes(b"\xff\xfe1.0.0\n")

    report = validate(root, checklist)

    version = report.get("version_format")
    assert version.status == "fail"
    error = version.failures[0]
    assert isinstance(error, MalformedVersion)
    assert error.path == "VERSION"
    assert "1.0.0" in error.content
    assert report.get("auxiliary_scripts").status == "pass"


def test_undecodable_manifest_is_a_parse_error(tmp_path, checklist) -> None:
    root = make_project(tmp_path)
    (root / "package.json").write_bytes(b'{"name": "\xff"}')

    report = validate(root, checklist)

    manifest = report.get("manifest_fields")
    assert manifest.status == "fail"
    assert isinstance(manifest.failures[0], ManifestParseError)
    assert manifest.failures[0].path == "package.json"
    assert report.get("auxiliary_scripts").status == "pass"


@pytest.mark.parametrize("constant", ["NaN", "Infinity", "-Infinity"])
def test_manifest_with_non_standard_constants_is_a_parse_error(tmp_path, checklist, constant) -> None:
    text = '{"name": "%s", "version": "1.0.0", "description": "x", "scripts": {"t": "x"}, "weight": %s}' % (
        EXPECTED_NAME,
        constant,
    )
    root = make_project(tmp_path, manifest=text)

    result = check_manifest_fields(root, checklist)

    assert result.status == "fail"
    error = result.failures[0]
    assert isinstance(error, ManifestParseError)
    assert constant in error.detail
