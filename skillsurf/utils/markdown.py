"""Markdown helpers — parsing SKILL.md frontmatter, building SKILL.md text."""

from __future__ import annotations

import json
import re
from typing import Any

import yaml

from skillsurf.errors import MalformedManifest

_FRONTMATTER_RE = re.compile(r"\A---[ \t]*\n(.*?)\n?^---[ \t]*(?:\n|\Z)(.*)", re.DOTALL | re.MULTILINE)
_KEY_VALUE_RE = re.compile(r"^(\w[\w-]*):\s*(.*)$")
_EDGE_QUOTES_RE = re.compile(r"^[\"']|[\"']$")


def _parse_key_value_lines(block: str) -> dict[str, Any]:
    """Line-by-line ``key: value`` reading for blocks that are not strict YAML."""
    meta: dict[str, Any] = {}
    for line in block.split("\n"):
        match = _KEY_VALUE_RE.match(line)
        if match:
            key, value = match.groups()
            value = _EDGE_QUOTES_RE.sub("", value.strip())
            # "metadata:" and the like open a nested block this reader skips
            if value:
                meta[key] = value
    return meta


def parse_skill_md(content: str) -> tuple[dict[str, Any], str]:
    """Parse YAML frontmatter from a SKILL.md file.

    Returns (frontmatter_dict, body_after_frontmatter). An empty block yields
    an empty dict; required keys are checked later by the validator.

    Hand-written frontmatter is often not strict YAML (``description: Use
    when: ...``); such blocks are read as plain ``key: value`` lines instead.

    Raises MalformedManifest when the delimiters are missing or the block is
    YAML but not a mapping.
    """
    text = content.replace("\r\n", "\n").lstrip("\ufeff")
    match = _FRONTMATTER_RE.match(text)
    if not match:
        raise MalformedManifest("Invalid SKILL.md format: missing frontmatter")

    block = match.group(1)
    try:
        meta = yaml.safe_load(block)
    except yaml.YAMLError:
        return _parse_key_value_lines(block), match.group(2)

    if meta is None:
        meta = {}
    if not isinstance(meta, dict):
        raise MalformedManifest("Invalid SKILL.md frontmatter: expected a mapping")

    # YAML keys can come back as ints/bools ("1: x", "yes: y")
    return {str(k): v for k, v in meta.items()}, match.group(2)


def build_skill_md(
    name: str,
    description: str,
    body: str = "",
    metadata: dict[str, Any] | None = None,
) -> str:
    """Build a SKILL.md string with YAML frontmatter."""
    lines = ["---"]
    lines.append(f"name: {json.dumps(name)}")
    lines.append(f"description: {json.dumps(description)}")
    if metadata:
        lines.append(f"metadata: {json.dumps(metadata)}")
    lines.append("---")
    lines.append("")
    if body:
        lines.append(body)
    return "\n".join(lines) + "\n"
