"""Tests for scanning skill roots into a PackageIndex."""

from __future__ import annotations

from pathlib import Path

import pytest

from skillpack.skills import (
    DuplicateName,
    PackageIndex,
    UnknownPackage,
    fingerprint_roots,
    scan,
)
from skillpack.skills.index import plan_units
from tests.utils import make_package, write_skill


class TestScan:
    """Test scanning the sample plugin tree."""

    def test_indexes_all_packages(self, skill_root: Path) -> None:
        index = scan([skill_root])
        assert index.names() == [
            "cloudformation-to-pulumi",
            "pulumi-cdk-to-pulumi",
            "pulumi-component",
            "pulumi-esc",
        ]
        assert len(index) == 4
        assert index.warnings == ()

    def test_iteration_is_sorted(self, skill_root: Path) -> None:
        index = scan([skill_root])
        assert [p.name for p in index] == sorted(index.names())

    def test_every_package_name_matches_its_directory(self, skill_root: Path) -> None:
        index = scan([skill_root])
        for package in index:
            assert package.path is not None
            assert package.name == package.path.name

    def test_groups_from_layout(self, skill_root: Path) -> None:
        index = scan([skill_root])
        assert index.groups() == ["pulumi-authoring", "pulumi-migration"]
        assert [p.name for p in index.by_group("pulumi-authoring")] == [
            "pulumi-component",
            "pulumi-esc",
        ]

    def test_variants_and_reference_files(self, skill_root: Path) -> None:
        index = scan([skill_root])
        component = index["pulumi-component"]
        assert component.languages == ["go", "ts"]
        assert list(component.reference_files) == ["references/outputs.md"]
        assert index["pulumi-cdk-to-pulumi"].languages == ["ts"]

    def test_roots_and_fingerprint_recorded(self, skill_root: Path) -> None:
        index = scan([skill_root])
        assert index.roots == (skill_root,)
        assert index.fingerprint == fingerprint_roots([skill_root])

    def test_same_root_under_two_spellings_scanned_once(
        self, skill_root: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(skill_root.parent)
        index = scan([skill_root, Path(skill_root.name), f"{skill_root}/../{skill_root.name}"])
        assert len(index) == 4
        assert index.roots == (skill_root,)

    def test_repeated_root_scanned_once(self, skill_root: Path) -> None:
        assert scan([skill_root, skill_root]).names() == scan([skill_root]).names()

    def test_lookup(self, skill_root: Path) -> None:
        index = scan([skill_root])
        assert "pulumi-esc" in index
        assert index.get("missing") is None
        with pytest.raises(UnknownPackage):
            index.require("missing")
        with pytest.raises(KeyError):
            index["missing"]

    def test_classmethod_scan(self, skill_root: Path) -> None:
        assert PackageIndex.scan([skill_root], max_workers=1).names() == scan([skill_root]).names()

    def test_scan_does_not_modify_tree(self, skill_root: Path) -> None:
        before = fingerprint_roots([skill_root])
        scan([skill_root])
        assert fingerprint_roots([skill_root]) == before


class TestScanErrors:
    """Test malformed packages, duplicates and bad roots."""

    def test_malformed_package_excluded_with_warning(self, tmp_path: Path) -> None:
        root = tmp_path / "root"
        write_skill(root, "good-skill", "Works")
        write_skill(root, "bad-skill", "Mismatched", frontmatter_name="other-name")

        index = scan([root])

        assert index.names() == ["good-skill"]
        assert len(index.warnings) == 1
        warning = index.warnings[0]
        assert warning.kind == "malformed"
        assert warning.package == "other-name"
        assert "does not match directory" in warning.message

    def test_duplicate_name_rejects_scan(self, tmp_path: Path) -> None:
        write_skill(tmp_path / "first", "pulumi-esc", "One")
        write_skill(tmp_path / "second", "pulumi-esc", "Two")

        with pytest.raises(DuplicateName) as exc_info:
            scan([tmp_path / "first", tmp_path / "second"])

        assert exc_info.value.package == "pulumi-esc"
        assert len(exc_info.value.paths) == 2

    def test_duplicate_name_in_constructor(self) -> None:
        with pytest.raises(DuplicateName):
            PackageIndex([make_package("same"), make_package("same")])

    def test_missing_root_is_a_warning(self, tmp_path: Path) -> None:
        write_skill(tmp_path / "present", "pulumi-esc", "Secrets")

        index = scan([tmp_path / "present", tmp_path / "absent"])

        assert index.names() == ["pulumi-esc"]
        assert [w.kind for w in index.warnings] == ["root"]

    def test_empty_root(self, tmp_path: Path) -> None:
        index = scan([tmp_path])
        assert len(index) == 0
        assert index.warnings == ()


class TestLayouts:
    """Test the accepted directory layouts."""

    def test_root_is_a_package(self, tmp_path: Path) -> None:
        package_dir = write_skill(tmp_path, "pulumi-esc", "Secrets")
        index = scan([package_dir])
        assert index.names() == ["pulumi-esc"]
        assert index["pulumi-esc"].group is None

    def test_root_with_skills_directory(self, tmp_path: Path) -> None:
        plugin = tmp_path / "pulumi-authoring"
        write_skill(plugin / "skills", "pulumi-esc", "Secrets")
        index = scan([plugin])
        assert index["pulumi-esc"].group == "pulumi-authoring"

    def test_bare_package_directories(self, tmp_path: Path) -> None:
        write_skill(tmp_path, "pulumi-esc", "Secrets")
        write_skill(tmp_path, "pulumi-component", "Components")
        (tmp_path / "notes").mkdir()

        index = scan([tmp_path])

        assert index.names() == ["pulumi-component", "pulumi-esc"]
        assert all(p.group is None for p in index)

    def test_plan_units_one_per_group(self, skill_root: Path) -> None:
        units = plan_units(skill_root)
        assert sorted(u.group for u in units) == ["pulumi-authoring", "pulumi-migration"]

    def test_hidden_directories_skipped(self, tmp_path: Path) -> None:
        write_skill(tmp_path / ".git", "pulumi-esc", "Secrets")
        assert len(scan([tmp_path])) == 0


class TestFingerprint:
    def test_stable_for_unchanged_tree(self, skill_root: Path) -> None:
        assert fingerprint_roots([skill_root]) == fingerprint_roots([skill_root])

    def test_changes_when_file_added(self, skill_root: Path) -> None:
        before = fingerprint_roots([skill_root])
        write_skill(skill_root, "new-skill", "Fresh")
        assert fingerprint_roots([skill_root]) != before
