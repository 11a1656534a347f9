"""Tests for Package and PackageList editing."""

import logging

import pytest

from constants import PackageShape
from devconfig import InvalidPlatformError, Package, PackageList, PackageNotFoundError


def legacy(*raw):
    return PackageList.from_json(list(raw))


class TestPackage:
    """Test single declaration accessors."""

    def test_from_legacy_defaults_to_latest(self):
        pkg = Package.from_legacy("python")
        assert pkg.name == "python"
        assert pkg.version == "latest"
        assert pkg.shape == PackageShape.LEGACY_LIST

    def test_from_legacy_scoped_name(self):
        pkg = Package.from_legacy("@angular/cli@17.0.0")
        assert (pkg.name, pkg.version) == ("@angular/cli", "17.0.0")

    def test_versioned_name(self):
        assert Package.version_only("go", "1.20").versioned_name() == "go@1.20"
        assert Package("hello").versioned_name() == "hello"

    def test_equality_ignores_shape(self):
        assert Package.version_only("go", "1.20") == Package("go", {"version": "1.20"})
        assert Package.from_legacy("go@1.20") == Package.version_only("go", "1.20")

    def test_accessors(self):
        pkg = Package("python", {
            "version": "2.7",
            "platforms": ["x86_64-linux"],
            "excluded_platforms": ["aarch64-darwin"],
            "outputs": ["out"],
            "allow_insecure": ["python-2.7.18.1"],
            "patch": "always",
            "disable_plugin": True,
        })
        assert pkg.version == "2.7"
        assert pkg.platforms == ["x86_64-linux"]
        assert pkg.excluded_platforms == ["aarch64-darwin"]
        assert pkg.outputs == ["out"]
        assert pkg.allow_insecure == ["python-2.7.18.1"]
        assert pkg.patch == "always"
        assert pkg.disable_plugin is True

    def test_is_enabled_on_platform(self):
        only_linux = Package("go", {"version": "1.20", "platforms": ["x86_64-linux"]})
        assert only_linux.is_enabled_on_platform("x86_64-linux")
        assert not only_linux.is_enabled_on_platform("aarch64-darwin")
        not_mac = Package("go", {"version": "1.20", "excluded_platforms": ["aarch64-darwin"]})
        assert not not_mac.is_enabled_on_platform("aarch64-darwin")
        assert not_mac.is_enabled_on_platform("x86_64-linux")

    def test_spec_string(self):
        assert Package.version_only("go", "1.20").spec_string() == "go@1.20"
        assert Package.from_legacy("go").spec_string() == "go"
        assert Package.version_only("github:owner/repo#pkg", "latest").spec_string() == "github:owner/repo#pkg"


class TestPackageListLoad:
    """Test building a list from each surface shape."""

    def test_legacy_keeps_duplicates_and_order(self):
        pkgs = legacy("go@1.20", "python", "go@1.21")
        assert pkgs.is_array
        assert pkgs.versioned_names() == ["go@1.20", "python@latest", "go@1.21"]

    def test_mixed_map(self):
        pkgs = PackageList.from_json({"go": "1.20", "python": {"version": "3.12", "outputs": ["out"]}})
        assert pkgs.names() == ["go", "python"]
        assert pkgs.to_json() == {"go": "1.20", "python": {"version": "3.12", "outputs": ["out"]}}

    def test_record_without_extra_fields_stays_record(self):
        pkgs = PackageList.from_json({"python": {"version": "latest"}})
        pkgs.set_version("python", "3.12")
        assert pkgs.to_json() == {"python": {"version": "3.12"}}

    def test_unmodified(self):
        assert not PackageList.from_json({"go": "1.20"}).modified


class TestPackageListEdit:
    """Test mutations and their effect on rendering."""

    def test_add_appends(self):
        pkgs = PackageList.from_json({"go": "1.20"})
        assert pkgs.add(Package.version_only("python", "3.12"))
        assert pkgs.names() == ["go", "python"]
        assert pkgs.modified

    def test_add_identical_is_noop(self):
        pkgs = PackageList.from_json({"go": "1.20"})
        assert not pkgs.add(Package.version_only("go", "1.20"))
        assert not pkgs.modified

    def test_add_same_name_updates_version_in_object_form(self):
        pkgs = PackageList.from_json({"go": "1.20"})
        assert pkgs.add_versioned_name("go@1.21")
        assert pkgs.to_json() == {"go": "1.21"}

    def test_add_to_legacy_stays_array(self):
        pkgs = legacy("go@1.20")
        pkgs.add_versioned_name("python")
        assert pkgs.to_json() == ["go@1.20", "python@latest"]

    def test_add_record_to_legacy_promotes(self):
        pkgs = legacy("go@1.20")
        pkgs.add(Package("python", {"version": "3.12", "outputs": ["out"]}))
        assert not pkgs.is_array
        assert pkgs.to_json() == {"go": "1.20", "python": {"version": "3.12", "outputs": ["out"]}}

    def test_promotion_is_one_way(self):
        pkgs = legacy("go@1.20")
        pkgs.set_outputs("go", ["out"])
        pkgs.set_outputs("go", [])
        assert pkgs.to_json() == {"go": {"version": "1.20"}}

    def test_promotion_drops_later_duplicates(self, caplog):
        pkgs = legacy("go@1.20", "go@1.21")
        with caplog.at_level(logging.WARNING):
            pkgs.set_outputs("go", ["out"])
        assert pkgs.to_json() == {"go": {"version": "1.20", "outputs": ["out"]}}
        assert "go@1.21" in caplog.text

    def test_promotion_keeps_edited_duplicate(self, caplog):
        pkgs = legacy("python", "go@1.20", "go@1.21")
        with caplog.at_level(logging.WARNING):
            pkgs.set_outputs("go@1.21", ["out"])
        assert pkgs.to_json() == {"python": "latest", "go": {"version": "1.21", "outputs": ["out"]}}
        assert "go@1.20" in caplog.text
        assert "go@1.21" not in caplog.text

    def test_remove_first_match(self):
        pkgs = legacy("go@1.20", "python", "go@1.21")
        removed = pkgs.remove("go")
        assert removed.version == "1.20"
        assert pkgs.to_json() == ["python", "go@1.21"]

    def test_remove_by_versioned_name(self):
        pkgs = legacy("go@1.20", "go@1.21")
        pkgs.remove("go@1.21")
        assert pkgs.to_json() == ["go@1.20"]

    def test_remove_missing(self):
        with pytest.raises(PackageNotFoundError):
            PackageList.from_json({"go": "1.20"}).remove("python")

    def test_set_field_missing(self):
        with pytest.raises(PackageNotFoundError):
            PackageList.from_json({}).set_field("go", "version", "1.20")

    def test_set_same_value_is_noop(self):
        pkgs = PackageList.from_json({"go": "1.20"})
        pkgs.set_version("go", "1.20")
        assert not pkgs.modified

    def test_field_order_preserved(self):
        pkgs = PackageList.from_json({"go": {"outputs": ["out"], "version": "1.20"}})
        pkgs.set_allow_insecure("go", ["go-1.20"])
        assert list(pkgs.to_json()["go"]) == ["outputs", "version", "allow_insecure"]

    def test_add_platforms_clears_exclusion(self):
        pkgs = PackageList.from_json({"go": {"version": "1.20", "excluded_platforms": ["x86_64-linux"]}})
        pkgs.add_platforms("go", ["x86_64-linux", "aarch64-darwin"])
        assert pkgs.to_json() == {"go": {"version": "1.20", "platforms": ["x86_64-linux", "aarch64-darwin"]}}

    def test_exclude_platforms_clears_platform(self):
        pkgs = PackageList.from_json({"go": {"version": "1.20", "platforms": ["x86_64-linux", "aarch64-darwin"]}})
        pkgs.exclude_platforms("go", ["x86_64-linux"])
        assert pkgs.get("go").platforms == ["aarch64-darwin"]
        assert pkgs.get("go").excluded_platforms == ["x86_64-linux"]

    def test_invalid_platform(self):
        pkgs = PackageList.from_json({"go": "1.20"})
        with pytest.raises(InvalidPlatformError):
            pkgs.add_platforms("go", ["sparc-solaris"])
        assert not pkgs.modified

    def test_set_patch(self):
        pkgs = PackageList.from_json({"go": "1.20"})
        pkgs.set_patch("go", "never")
        assert pkgs.to_json() == {"go": {"version": "1.20", "patch": "never"}}
        with pytest.raises(ValueError):
            pkgs.set_patch("go", "sometimes")

    def test_disable_plugin(self):
        pkgs = PackageList.from_json({"go": "1.20"})
        pkgs.set_disable_plugin("go", True)
        assert pkgs.get("go").disable_plugin
        pkgs.set_disable_plugin("go", False)
        assert pkgs.to_json() == {"go": {"version": "1.20"}}
