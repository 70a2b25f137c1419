"""Tests for manifest models, persistence and global/project merging."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from positive_vibes.errors import ManifestError, ManifestNotFoundError
from positive_vibes.manifest import (
    AgentRef,
    InstructionRef,
    Manifest,
    RegistrySpec,
    SkillRef,
    compute_override_diagnostics,
    diff_manifests,
    entry_sources,
    find_manifest,
    load_global_manifest,
    load_manifest,
    load_manifest_from_project,
    load_manifest_or_empty,
    load_merged_manifest,
    merge_manifests,
    save_manifest,
    validate_config,
)

FULL_MANIFEST = """\
targets:
  - vscode-copilot
  - cursor
registries:
  - name: awesome
    url: https://github.com/example/awesome.git
    ref: v1.0.0
    skillsPath: skills
skills:
  - name: code-review
    registry: embedded
  - name: local-skill
    path: ./skills/local-skill
instructions:
  - name: style
    content: Use tabs.
    applyTo: cursor
  - name: security
    path: docs/security.md
agents:
  - name: reviewer
    path: agents/reviewer.md
"""


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


COMMENTED_MANIFEST = """\
# Team vibes
targets:  # where skills land
  - cursor
skills:
  - name: tdd  # keep this one
    registry: "embedded"
  - name: code-review
"""


class TestManifestModel:
    def test_from_dict_full(self, tmp_path: Path):
        manifest = load_manifest(_write(tmp_path / "vibes.yaml", FULL_MANIFEST))
        assert manifest.targets == ["vscode-copilot", "cursor"]
        assert manifest.registries == [
            RegistrySpec(
                name="awesome",
                url="https://github.com/example/awesome.git",
                ref="v1.0.0",
                skills_path="skills",
            )
        ]
        assert manifest.skills[0] == SkillRef(name="code-review", registry="embedded")
        assert manifest.skills[1].path == "./skills/local-skill"
        assert manifest.instructions[0].apply_to == "cursor"
        assert manifest.agents == [AgentRef(name="reviewer", path="agents/reviewer.md")]
        manifest.validate()

    def test_legacy_paths_block(self):
        spec = RegistrySpec.from_dict(
            {"name": "old", "url": "u", "paths": {"skills": "s", "instructions": "i", "agents": "a"}}
        )
        assert (spec.skills_path, spec.instructions_path, spec.agents_path) == ("s", "i", "a")
        assert spec.to_dict() == {
            "name": "old",
            "url": "u",
            "skillsPath": "s",
            "instructionsPath": "i",
            "agentsPath": "a",
        }

    def test_registry_defaults_are_not_written(self):
        assert RegistrySpec(name="r", url="u").to_dict() == {"name": "r", "url": "u"}

    def test_duplicate_names_rejected(self):
        with pytest.raises(ManifestError) as exc_info:
            Manifest.from_dict({"skills": [{"name": "a"}, {"name": "a"}]})
        assert "duplicate" in str(exc_info.value)

    def test_empty_document(self):
        assert Manifest.from_dict(None) == Manifest()

    @pytest.mark.parametrize(
        "data",
        [
            ["not", "a", "mapping"],
            {"skills": "code-review"},
            {"skills": ["code-review"]},
            {"targets": {"a": 1}},
        ],
    )
    def test_structurally_invalid(self, data):
        with pytest.raises(ManifestError):
            Manifest.from_dict(data)

    def test_lookup_helpers(self):
        manifest = Manifest(skills=[SkillRef(name="a"), SkillRef(name="b")])
        assert manifest.names("skills") == ["a", "b"]
        assert manifest.has("skills", "b")
        assert manifest.find("skills", "zzz") is None
        assert manifest.remove("skills", "a") is True
        assert manifest.remove("skills", "a") is False
        assert manifest.names("skills") == ["b"]
        with pytest.raises(ValueError):
            manifest.entries("registries")


class TestValidate:
    def _valid(self) -> Manifest:
        return Manifest(targets=["opencode"], skills=[SkillRef(name="a")])

    def test_valid(self):
        self._valid().validate()

    def test_requires_target(self):
        manifest = self._valid()
        manifest.targets = []
        with pytest.raises(ManifestError):
            manifest.validate()

    def test_rejects_unknown_target(self):
        manifest = self._valid()
        manifest.targets = ["vim"]
        with pytest.raises(ManifestError) as exc_info:
            manifest.validate()
        assert "vim" in str(exc_info.value)

    def test_instruction_needs_exactly_one_source(self):
        manifest = self._valid()
        manifest.instructions = [InstructionRef(name="i")]
        with pytest.raises(ManifestError):
            manifest.validate()
        manifest.instructions = [InstructionRef(name="i", content="c", path="p")]
        with pytest.raises(ManifestError):
            manifest.validate()

    def test_agent_needs_path(self):
        manifest = self._valid()
        manifest.agents = [AgentRef(name="agent")]
        with pytest.raises(ManifestError):
            manifest.validate()

    @pytest.mark.parametrize("name", ["../../escape", "nested/skill", ".."])
    def test_rejects_path_like_names(self, name: str):
        manifest = self._valid()
        manifest.skills = [SkillRef(name=name)]
        with pytest.raises(ManifestError) as exc_info:
            manifest.validate()
        assert "single path component" in str(exc_info.value)

        manifest = self._valid()
        manifest.agents = [AgentRef(name=name, path="a.md")]
        with pytest.raises(ManifestError):
            manifest.validate()


class TestStore:
    def test_find_manifest_walks_upward(self, tmp_path: Path):
        manifest_path = _write(tmp_path / "vibes.yaml", "targets: [cursor]\n")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_manifest(nested) == manifest_path.resolve()

    def test_find_manifest_accepts_yml(self, tmp_path: Path):
        manifest_path = _write(tmp_path / "vibes.yml", "targets: [cursor]\n")
        assert find_manifest(tmp_path) == manifest_path.resolve()

    def test_load_from_project_missing(self, tmp_path: Path):
        with pytest.raises(ManifestNotFoundError):
            load_manifest_from_project(tmp_path)

    def test_load_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_manifest(tmp_path / "vibes.yaml")
        assert load_manifest_or_empty(tmp_path / "vibes.yaml") == Manifest()

    def test_invalid_yaml(self, tmp_path: Path):
        path = _write(tmp_path / "vibes.yaml", "skills: [unclosed\n")
        with pytest.raises(ManifestError) as exc_info:
            load_manifest(path)
        assert "Invalid YAML" in str(exc_info.value)

    def test_save_then_load_preserves_order(self, tmp_path: Path):
        manifest = Manifest(
            targets=["opencode", "cursor"],
            skills=[SkillRef(name=n, registry="embedded") for n in ("zeta", "alpha", "mid")],
            instructions=[InstructionRef(name="style", content="Use tabs.", apply_to="cursor")],
        )
        path = tmp_path / "vibes.yaml"
        save_manifest(manifest, path)

        assert load_manifest(path) == manifest
        text = path.read_text(encoding="utf-8")
        assert text.index("zeta") < text.index("alpha") < text.index("mid")
        assert "applyTo: cursor" in text

    def test_save_is_atomic_and_leaves_no_temp_files(self, tmp_path: Path):
        path = tmp_path / "proj" / "vibes.yaml"
        save_manifest(Manifest(targets=["cursor"]), path)
        save_manifest(Manifest(targets=["opencode"]), path)
        assert [p.name for p in path.parent.iterdir()] == ["vibes.yaml"]
        assert oct(os.stat(path).st_mode & 0o777) == oct(0o644)
        assert load_manifest(path).targets == ["opencode"]

    def test_save_with_header(self, tmp_path: Path):
        path = tmp_path / "vibes.yaml"
        save_manifest(Manifest(targets=["cursor"]), path, header="# hello")
        assert path.read_text(encoding="utf-8").startswith("# hello\n")
        assert load_manifest(path).targets == ["cursor"]

    def test_save_keeps_comments_and_quotes(self, tmp_path: Path):
        path = _write(tmp_path / "vibes.yaml", COMMENTED_MANIFEST)
        manifest = load_manifest(path)
        manifest.skills.append(SkillRef(name="new-skill", registry="embedded"))

        save_manifest(manifest, path)

        text = path.read_text(encoding="utf-8")
        assert "# Team vibes" in text
        assert "# where skills land" in text
        assert "# keep this one" in text
        assert 'registry: "embedded"' in text
        assert "  - name: new-skill\n    registry: embedded\n" in text
        assert load_manifest(path) == manifest

    def test_save_after_remove_keeps_other_comments(self, tmp_path: Path):
        path = _write(tmp_path / "vibes.yaml", COMMENTED_MANIFEST)
        manifest = load_manifest(path)
        manifest.remove("skills", "code-review")

        save_manifest(manifest, path)

        text = path.read_text(encoding="utf-8")
        assert "code-review" not in text
        assert "# Team vibes" in text
        assert "# keep this one" in text
        assert [s.name for s in load_manifest(path).skills] == ["tdd"]

    def test_save_into_empty_flow_list_uses_block_style(self, tmp_path: Path):
        path = _write(tmp_path / "vibes.yaml", "targets:\n  - cursor\nskills: []\n")
        manifest = load_manifest(path)
        manifest.skills.append(SkillRef(name="tdd"))

        save_manifest(manifest, path)

        assert "skills:\n  - name: tdd\n" in path.read_text(encoding="utf-8")

class TestMerge:
    def test_project_wins_by_name(self):
        global_manifest = Manifest(
            targets=["cursor"],
            skills=[SkillRef(name="a", registry="g"), SkillRef(name="b", registry="g")],
        )
        project_manifest = Manifest(skills=[SkillRef(name="b", registry="p"), SkillRef(name="c")])

        merged = merge_manifests(global_manifest, project_manifest)

        assert merged.targets == ["cursor"]
        assert [(s.name, s.registry) for s in merged.skills] == [("a", "g"), ("b", "p"), ("c", "")]
        assert global_manifest.skills[1].registry == "g"

    def test_project_targets_override(self):
        merged = merge_manifests(Manifest(targets=["cursor"]), Manifest(targets=["opencode"]))
        assert merged.targets == ["opencode"]

    def test_project_registries_come_first(self):
        global_manifest = Manifest(
            registries=[RegistrySpec(name="shared", url="g"), RegistrySpec(name="global-only", url="g2")]
        )
        project_manifest = Manifest(
            registries=[RegistrySpec(name="mine", url="p"), RegistrySpec(name="shared", url="p2")]
        )
        merged = merge_manifests(global_manifest, project_manifest)
        assert [(r.name, r.url) for r in merged.registries] == [
            ("mine", "p"),
            ("shared", "p2"),
            ("global-only", "g2"),
        ]

    def test_load_merged_resolves_relative_paths(self, tmp_path: Path):
        global_path = _write(
            tmp_path / "config" / "vibes.yaml",
            "targets: [cursor]\nagents:\n  - name: g-agent\n    path: agents/g.md\n",
        )
        project = tmp_path / "project"
        _write(
            project / "vibes.yaml",
            "skills:\n  - name: local\n    path: skills/local\n"
            "agents:\n  - name: r-agent\n    path: r.agent.md\n    registry: awesome\n",
        )

        merged = load_merged_manifest(project, global_path)

        assert merged.targets == ["cursor"]
        assert merged.skills[0].path == str(project.resolve() / "skills" / "local")
        agents = {a.name: a for a in merged.agents}
        assert agents["g-agent"].path == str(tmp_path / "config" / "agents" / "g.md")
        assert agents["r-agent"].path == "r.agent.md"

    def test_load_merged_only_global(self, tmp_path: Path):
        global_path = _write(tmp_path / "g" / "vibes.yaml", "targets: [opencode]\n")
        empty_project = tmp_path / "empty"
        empty_project.mkdir()
        assert load_merged_manifest(empty_project, global_path).targets == ["opencode"]

    def test_load_merged_neither(self, tmp_path: Path):
        with pytest.raises(ManifestNotFoundError):
            load_merged_manifest(tmp_path, tmp_path / "missing.yaml")

    def test_load_global_missing(self, tmp_path: Path):
        assert load_global_manifest(tmp_path / "nope.yaml") is None

    def test_override_diagnostics(self):
        global_manifest = Manifest(
            skills=[SkillRef(name="b"), SkillRef(name="a")],
            agents=[AgentRef(name="x", path="x.md")],
        )
        project_manifest = Manifest(
            skills=[SkillRef(name="a"), SkillRef(name="b"), SkillRef(name="c")],
        )
        diagnostics = compute_override_diagnostics(global_manifest, project_manifest)
        assert diagnostics.skills == ["a", "b"]
        assert diagnostics.agents == []
        assert not diagnostics.is_empty
        assert compute_override_diagnostics(None, project_manifest).is_empty


class TestConfigReport:
    EMBEDDED = ["a", "b", "x"]

    def test_clean_config(self, tmp_path: Path):
        (tmp_path / "skills" / "mine").mkdir(parents=True)
        merged = Manifest(
            targets=["cursor"],
            skills=[SkillRef(name="a"), SkillRef(name="mine", path=str(tmp_path / "skills" / "mine"))],
            instructions=[InstructionRef(name="style", content="tabs")],
        )
        report = validate_config(merged, self.EMBEDDED)
        assert report.ok
        assert report.warnings == []

    def test_problems_are_reported_per_entry(self, tmp_path: Path):
        merged = Manifest(
            targets=["cursor", "vim"],
            skills=[
                SkillRef(name="missing"),
                SkillRef(name="gone", path=str(tmp_path / "gone")),
                SkillRef(name="a", registry="nowhere"),
            ],
            agents=[AgentRef(name="helper", path=str(tmp_path / "helper.agent.md"))],
        )
        report = validate_config(merged, self.EMBEDDED)

        assert not report.ok
        assert "invalid target" in report.problem_for("vim")
        assert report.problem_for("missing") == "not found in any registry"
        assert report.problem_for("gone").startswith("path not found")
        assert report.problem_for("a") == "registry not found: nowhere"
        assert report.problem_for("helper").startswith("path not found")
        assert report.problem_for("cursor") is None

    def test_git_registry_makes_unknown_skill_a_warning(self):
        merged = Manifest(
            targets=["cursor"],
            registries=[RegistrySpec(name="team", url="https://example.com/team.git")],
            skills=[SkillRef(name="team-skill")],
        )
        report = validate_config(merged, self.EMBEDDED)
        assert report.ok
        assert [w.field for w in report.warnings] == ["team-skill"]

    def test_empty_project_config(self):
        report = validate_config(Manifest(targets=["cursor"]), self.EMBEDDED)
        assert report.problem_for("resources") is not None

        report = validate_config(Manifest(skills=[SkillRef(name="a")]), self.EMBEDDED)
        assert report.problem_for("targets") == "no targets defined"

        assert validate_config(Manifest(), self.EMBEDDED, has_local=False).ok

    def test_diff_and_sources(self):
        global_manifest = Manifest(
            targets=["cursor"],
            skills=[SkillRef(name="shared"), SkillRef(name="global-only")],
        )
        project_manifest = Manifest(skills=[SkillRef(name="shared", registry="p"), SkillRef(name="mine")])
        merged = merge_manifests(global_manifest, project_manifest)

        report = diff_manifests(global_manifest, project_manifest, merged)

        assert report["global_only"]["skills"] == ["global-only"]
        assert report["local_only"]["skills"] == ["mine"]
        assert report["overrides"]["skills"] == ["shared"]
        assert report["effective_summary"]["skills"] == 3
        assert report["effective_summary"]["targets"] == 1

        sources = {name: source for kind, name, source in entry_sources(global_manifest, project_manifest, merged)}
        assert sources == {"global-only": "global", "shared": "local, overrides global", "mine": "local"}

    def test_diff_without_global(self):
        project_manifest = Manifest(targets=["cursor"], skills=[SkillRef(name="a")])
        report = diff_manifests(None, project_manifest, project_manifest)
        assert report["local_only"]["skills"] == ["a"]
        assert report["overrides"]["skills"] == []
