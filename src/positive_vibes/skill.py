"""SKILL.md codec: YAML front-matter plus a markdown instructions body.

A document that starts with a ``---`` line carries front-matter up to the
next ``---`` line; everything after it (minus one leading newline) is the
body. Without that opening fence the whole document is the body.
"""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .errors import SkillParseError

FENCE = "---"


@dataclass
class Skill:
    """A parsed skill document."""

    name: str = ""
    description: str = ""
    version: str = ""
    author: str = ""
    tags: list[str] = field(default_factory=list)
    globs: list[str] = field(default_factory=list)
    instructions: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "author": self.author,
            "tags": list(self.tags),
            "globs": list(self.globs),
            "instructions": self.instructions,
        }


def _split_front_matter(text: str) -> tuple[str | None, str]:
    """Return ``(yaml_block, body)``; ``yaml_block`` is None without a fence."""
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip("\r\n") != FENCE:
        return None, text

    for index in range(1, len(lines)):
        if lines[index].rstrip("\r\n") == FENCE:
            yaml_block = "".join(lines[1:index])
            body = "".join(lines[index + 1:])
            if body.startswith("\r\n"):
                body = body[2:]
            elif body.startswith("\n"):
                body = body[1:]
            return yaml_block, body

    # Opening fence without a closing one: treat everything as body.
    return None, text


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _as_str_list(key: str, value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise SkillParseError(f"front-matter '{key}' must be a list of strings")
    return [_as_str(item) for item in value]


def parse_skill(content: str | bytes) -> Skill:
    """Parse a SKILL.md document.

    Raises:
        SkillParseError: If the document is empty or its front-matter is
            not a valid YAML mapping.
    """
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SkillParseError(f"skill document is not valid UTF-8: {exc}") from exc

    if not content.strip():
        raise SkillParseError("empty document")

    yaml_block, body = _split_front_matter(content)
    if yaml_block is None:
        return Skill(instructions=body)

    yaml = YAML(typ="safe")
    try:
        data = yaml.load(yaml_block) or {}
    except YAMLError as exc:
        raise SkillParseError(f"invalid front-matter: {exc}") from exc

    if not isinstance(data, dict):
        raise SkillParseError("front-matter must be a YAML mapping")

    return Skill(
        name=_as_str(data.get("name")),
        description=_as_str(data.get("description")),
        version=_as_str(data.get("version")),
        author=_as_str(data.get("author")),
        tags=_as_str_list("tags", data.get("tags")),
        globs=_as_str_list("globs", data.get("globs")),
        instructions=body,
    )


def render_skill(skill: Skill) -> str:
    """Render *skill* back to SKILL.md text; empty optional fields are omitted."""
    front: dict[str, Any] = {"name": skill.name}
    if skill.description:
        front["description"] = skill.description
    if skill.version:
        front["version"] = skill.version
    if skill.author:
        front["author"] = skill.author
    if skill.tags:
        front["tags"] = list(skill.tags)
    if skill.globs:
        front["globs"] = list(skill.globs)

    yaml = YAML()
    yaml.default_flow_style = False
    yaml.indent(mapping=2, sequence=4, offset=2)
    yaml.width = 4096
    buffer = io.StringIO()
    yaml.dump(front, buffer)

    return f"{FENCE}\n{buffer.getvalue()}{FENCE}\n\n{skill.instructions}"
