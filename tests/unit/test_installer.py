"""Tests for the install/remove engine."""

from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from positive_vibes.engine import Installer
from positive_vibes.errors import (
    AlreadyInManifestError,
    AlreadyInstalledError,
    BatchError,
    NotInManifestError,
    ResourceNotFoundError,
    SkillNotFoundError,
)
from positive_vibes.manifest import Manifest, load_manifest, save_manifest
from positive_vibes.registry import EmbeddedRegistry
from positive_vibes.targets import InstallOptions, resolve_targets
from tests.utils import write_skill


def _tree(root: Path) -> dict[str, bytes]:
    return {str(p.relative_to(root)): p.read_bytes() for p in sorted(root.rglob("*")) if p.is_file()}


@pytest.fixture()
def manifest_path(project_dir: Path) -> Path:
    path = project_dir / "vibes.yaml"
    save_manifest(Manifest(targets=["vscode-copilot", "opencode"]), path)
    return path


@pytest.fixture()
def installer(embedded: EmbeddedRegistry) -> Installer:
    return Installer([embedded])


class TestInstall:
    def test_embedded_install_to_copilot(self, installer: Installer, manifest_path: Path, project_dir: Path):
        outcome = installer.install("code-review", manifest_path)

        skill_md = project_dir / ".github" / "skills" / "code-review" / "SKILL.md"
        assert skill_md.is_file()
        assert "code-review" in skill_md.read_text(encoding="utf-8")
        assert outcome.registry == "embedded"
        assert outcome.destinations == [
            project_dir / ".github" / "skills" / "code-review",
            project_dir / ".opencode" / "skills" / "code-review",
        ]

        manifest = load_manifest(manifest_path)
        assert [s.to_dict() for s in manifest.skills] == [{"name": "code-review", "registry": "embedded"}]

    def test_missing_manifest_starts_empty(self, installer: Installer, project_dir: Path):
        path = project_dir / "vibes.yaml"
        Installer(installer.registries, targets=resolve_targets(["cursor"])).install("a", path)
        assert load_manifest(path).names("skills") == ["a"]
        assert (project_dir / ".cursor" / "skills" / "a" / "SKILL.md").is_file()

    def test_explicit_targets_override_manifest(self, embedded: EmbeddedRegistry, manifest_path: Path, project_dir: Path):
        Installer([embedded], targets=resolve_targets(["cursor"])).install("a", manifest_path)
        assert (project_dir / ".cursor" / "skills" / "a").is_dir()
        assert not (project_dir / ".github").exists()

    def test_first_registry_wins(self, tmp_path: Path, embedded: EmbeddedRegistry, manifest_path: Path, project_dir: Path):
        other_root = tmp_path / "other"
        write_skill(other_root / "skills", "a", "Other a")
        write_skill(other_root / "skills", "only-other", "Only here")
        other = EmbeddedRegistry(name="other", bundle_root=other_root)

        installer = Installer([embedded, other])
        installer.install("a", manifest_path)
        installer.install("only-other", manifest_path)

        manifest = load_manifest(manifest_path)
        assert [(s.name, s.registry) for s in manifest.skills] == [("a", "embedded"), ("only-other", "other")]
        text = (project_dir / ".github" / "skills" / "a" / "SKILL.md").read_text(encoding="utf-8")
        assert "Skill a" in text

    def test_not_found(self, installer: Installer, manifest_path: Path):
        with pytest.raises(SkillNotFoundError) as exc_info:
            installer.install("missing", manifest_path)
        assert exc_info.value.name == "missing"
        assert load_manifest(manifest_path).skills == []

    def test_second_install_fails_and_changes_nothing(self, installer: Installer, manifest_path: Path, project_dir: Path):
        installer.install("x", manifest_path)
        before = _tree(project_dir)

        with pytest.raises((AlreadyInManifestError, AlreadyInstalledError)):
            installer.install("x", manifest_path)

        assert _tree(project_dir) == before

    def test_target_failure_leaves_manifest_untouched(self, installer: Installer, manifest_path: Path, project_dir: Path):
        # opencode is the second target; a pre-existing skill there aborts the install.
        (project_dir / ".opencode" / "skills" / "x").mkdir(parents=True)

        with pytest.raises(AlreadyInstalledError):
            installer.install("x", manifest_path)

        assert load_manifest(manifest_path).skills == []
        assert (project_dir / ".github" / "skills" / "x" / "SKILL.md").is_file()

    def test_force_overwrites_existing_target(self, installer: Installer, manifest_path: Path, project_dir: Path):
        stale = project_dir / ".github" / "skills" / "x"
        stale.mkdir(parents=True)
        (stale / "extra").write_text("junk", encoding="utf-8")

        installer.install("x", manifest_path, InstallOptions(force=True))

        assert not (stale / "extra").exists()
        assert (stale / "SKILL.md").is_file()

    def test_link_mode(self, installer: Installer, manifest_path: Path, project_dir: Path, bundle_root: Path):
        installer.install("x", manifest_path, InstallOptions(link=True))
        dest = project_dir / ".opencode" / "skills" / "x"
        assert dest.is_symlink()
        assert dest.resolve() == (bundle_root / "skills" / "x").resolve()


    def test_force_reinstall_of_installed_skill(self, installer: Installer, manifest_path: Path, project_dir: Path):
        installer.install("x", manifest_path)
        dest = project_dir / ".github" / "skills" / "x"
        (dest / "extra").write_text("junk", encoding="utf-8")
        (dest / "SKILL.md").write_text("tampered", encoding="utf-8")

        outcome = installer.install("x", manifest_path, InstallOptions(force=True))

        assert not (dest / "extra").exists()
        assert "Instructions for x" in (dest / "SKILL.md").read_text(encoding="utf-8")
        assert outcome.registry == "embedded"
        assert [s.to_dict() for s in load_manifest(manifest_path).skills] == [{"name": "x", "registry": "embedded"}]

    def test_force_reinstall_of_instruction_keeps_entry(self, installer: Installer, manifest_path: Path, project_dir: Path):
        installer.install_instruction("style", manifest_path)
        dest = project_dir / ".github" / "instructions" / "style.md"
        dest.write_text("edited\n", encoding="utf-8")

        installer.install_instruction("style", manifest_path, InstallOptions(force=True))

        assert dest.read_text() == "Use four spaces.\n"
        assert load_manifest(manifest_path).names("instructions") == ["style"]

    def test_directory_name_wins_over_front_matter(self, tmp_path: Path, manifest_path: Path, project_dir: Path):
        root = tmp_path / "renamed"
        skill_dir = root / "skills" / "foo"
        skill_dir.mkdir(parents=True)
        (skill_dir / "SKILL.md").write_text("---\nname: bar\n---\nbody\n", encoding="utf-8")
        installer = Installer([EmbeddedRegistry(name="renamed", bundle_root=root)])
        before = _tree(project_dir)

        installer.install("foo", manifest_path)
        assert (project_dir / ".github" / "skills" / "foo" / "SKILL.md").is_file()
        assert not (project_dir / ".github" / "skills" / "bar").exists()

        installer.remove("foo", manifest_path)
        assert _tree(project_dir) == before

    def test_front_matter_cannot_escape_target(self, tmp_path: Path, manifest_path: Path, project_dir: Path):
        root = tmp_path / "hostile"
        skill_dir = root / "skills" / "foo"
        skill_dir.mkdir(parents=True)
        (skill_dir / "SKILL.md").write_text("---\nname: ../../escaped\n---\nbody\n", encoding="utf-8")

        Installer([EmbeddedRegistry(name="hostile", bundle_root=root)]).install("foo", manifest_path)

        assert (project_dir / ".github" / "skills" / "foo" / "SKILL.md").is_file()
        assert not (project_dir / "escaped").exists()
        assert not (project_dir / ".github" / "escaped").exists()


class TestLocalSkills:
    def test_project_skill_is_used_first(self, installer: Installer, manifest_path: Path, project_dir: Path):
        write_skill(project_dir / "skills", "x", "Local x", "Local instructions")

        outcome = installer.install("x", manifest_path)

        assert outcome.registry == "local"
        text = (project_dir / ".github" / "skills" / "x" / "SKILL.md").read_text(encoding="utf-8")
        assert "Local instructions" in text
        assert [s.to_dict() for s in load_manifest(manifest_path).skills] == [{"name": "x", "path": "./skills/x"}]

    def test_project_only_skill(self, installer: Installer, manifest_path: Path, project_dir: Path):
        write_skill(project_dir / "skills", "mine", "Mine")
        installer.install("mine", manifest_path)
        assert (project_dir / ".opencode" / "skills" / "mine" / "SKILL.md").is_file()
        assert load_manifest(manifest_path).find("skills", "mine").path == "./skills/mine"

    def test_force_reinstall_reads_recorded_path(self, installer: Installer, manifest_path: Path, project_dir: Path):
        local = write_skill(project_dir / "skills", "mine", "Mine", "first")
        installer.install("mine", manifest_path)
        (local / "SKILL.md").write_text("---\nname: mine\n---\nsecond\n", encoding="utf-8")

        installer.install("mine", manifest_path, InstallOptions(force=True))

        text = (project_dir / ".github" / "skills" / "mine" / "SKILL.md").read_text(encoding="utf-8")
        assert text.endswith("second\n")
        assert load_manifest(manifest_path).names("skills") == ["mine"]


class TestRemove:
    def test_install_then_remove_restores_state(self, installer: Installer, manifest_path: Path, project_dir: Path):
        before = _tree(project_dir)

        installer.install("x", manifest_path)
        removed = installer.remove("x", manifest_path)

        assert len(removed) == 2
        assert _tree(project_dir) == before
        assert not (project_dir / ".github" / "skills").exists()
        assert not (project_dir / ".opencode" / "skills").exists()

    def test_remove_not_in_manifest(self, installer: Installer, manifest_path: Path):
        with pytest.raises(NotInManifestError):
            installer.remove("x", manifest_path)

    def test_remove_tolerates_missing_directories(self, installer: Installer, manifest_path: Path, project_dir: Path):
        installer.install("x", manifest_path)
        shutil.rmtree(project_dir / ".github")
        installer.remove("x", manifest_path)
        assert load_manifest(manifest_path).skills == []

    def test_remove_cleans_every_known_target(self, installer: Installer, manifest_path: Path, project_dir: Path):
        installer.install("x", manifest_path)
        # Left over from an earlier configuration that included cursor.
        (project_dir / ".cursor" / "skills" / "x").mkdir(parents=True)

        installer.remove("x", manifest_path)
        assert not (project_dir / ".cursor" / "skills").exists()


    def test_remove_keeps_existing_tool_directory(self, installer: Installer, manifest_path: Path, project_dir: Path):
        (project_dir / ".github").mkdir()

        installer.install("x", manifest_path)
        installer.remove("x", manifest_path)

        assert (project_dir / ".github").is_dir()
        assert list((project_dir / ".github").iterdir()) == []

class TestInstructionsAndAgents:
    def test_install_instruction(self, installer: Installer, manifest_path: Path, project_dir: Path):
        installer.install_instruction("style", manifest_path)

        assert (project_dir / ".github" / "instructions" / "style.md").read_text() == "Use four spaces.\n"
        entry = load_manifest(manifest_path).find("instructions", "style")
        assert (entry.registry, entry.path) == ("embedded", "style.instructions.md")

        with pytest.raises(AlreadyInManifestError):
            installer.install_instruction("style", manifest_path)

    def test_install_agent(self, installer: Installer, manifest_path: Path, project_dir: Path):
        installer.install_agent("helper", manifest_path)

        assert (project_dir / ".opencode" / "agents" / "helper.md").read_text() == "You are helpful.\n"
        entry = load_manifest(manifest_path).find("agents", "helper")
        assert (entry.registry, entry.path) == ("embedded", "helper.agent.md")

    def test_unknown_resource(self, installer: Installer, manifest_path: Path):
        with pytest.raises(ResourceNotFoundError) as exc_info:
            installer.install_agent("nobody", manifest_path)
        assert "agent 'nobody'" in str(exc_info.value)

    def test_remove_instruction_and_agent(self, installer: Installer, manifest_path: Path, project_dir: Path):
        installer.install_instruction("style", manifest_path)
        installer.install_agent("helper", manifest_path)

        installer.remove_instruction("style", manifest_path)
        installer.remove_agent("helper", manifest_path)

        manifest = load_manifest(manifest_path)
        assert manifest.instructions == [] and manifest.agents == []
        assert list(_tree(project_dir)) == ["vibes.yaml"]

        with pytest.raises(NotInManifestError):
            installer.remove_agent("helper", manifest_path)


class TestBatch:
    def test_partial_failure(self, installer: Installer, manifest_path: Path, project_dir: Path):
        with pytest.raises(BatchError) as exc_info:
            installer.install_many("skills", ["a", "missing", "b"], manifest_path)

        assert "missing" in str(exc_info.value)
        result = exc_info.value.result
        assert result.succeeded == ["a", "b"]
        assert [name for name, _ in result.failed] == ["missing"]
        assert load_manifest(manifest_path).names("skills") == ["a", "b"]
        for name in ("a", "b"):
            assert (project_dir / ".github" / "skills" / name / "SKILL.md").is_file()

    def test_failures_are_joined(self, installer: Installer, manifest_path: Path):
        with pytest.raises(BatchError) as exc_info:
            installer.install_many("skills", ["nope1", "nope2"], manifest_path)
        message = str(exc_info.value)
        assert "nope1" in message and "nope2" in message
        assert "; " in message

    def test_duplicates_in_manifest_are_skipped(self, installer: Installer, manifest_path: Path):
        installer.install("a", manifest_path)
        result = installer.install_many("skills", ["a", "b", "b", " "], manifest_path)

        assert result.succeeded == ["b"]
        assert [name for name, _ in result.skipped] == ["a"]
        assert result.ok

    def test_remove_many(self, installer: Installer, manifest_path: Path):
        installer.install_many("skills", ["a", "b"], manifest_path)
        result = installer.remove_many("skills", ["a", "never-installed"], manifest_path)

        assert result.succeeded == ["a"]
        assert [name for name, _ in result.skipped] == ["never-installed"]
        assert load_manifest(manifest_path).names("skills") == ["b"]

    def test_batch_instructions(self, installer: Installer, manifest_path: Path):
        result = installer.install_many("instructions", ["style"], manifest_path)
        assert result.succeeded == ["style"]
