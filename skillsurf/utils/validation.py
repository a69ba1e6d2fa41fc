"""Frontmatter validation for Agent Skills manifests.

Rules follow the Agent Skills format (https://agentskills.io/specification).
Each field is checked independently so one bad field never hides another;
within a field, a missing or mistyped value stops that field's checks.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

NAME_MAX_LENGTH = 64
DESCRIPTION_MAX_LENGTH = 1024
COMPATIBILITY_MAX_LENGTH = 500

_NAME_CHARSET_RE = re.compile(r"^[a-z0-9-]+$")


@dataclass
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)


def _validate_name(name: Any) -> list[str]:
    if name is None:
        return ["Missing required field: name"]
    if not isinstance(name, str):
        return ["name must be a string"]
    if len(name) == 0:
        return ["name cannot be empty"]

    errors: list[str] = []
    if len(name) > NAME_MAX_LENGTH:
        errors.append(f"name exceeds {NAME_MAX_LENGTH} characters (got {len(name)})")
    if not _NAME_CHARSET_RE.match(name):
        errors.append("name must only contain lowercase letters, numbers, and hyphens")
    if name.startswith("-"):
        errors.append("name must not start with a hyphen")
    if name.endswith("-"):
        errors.append("name must not end with a hyphen")
    if "--" in name:
        errors.append("name must not contain consecutive hyphens")
    return errors


def _validate_description(description: Any) -> list[str]:
    if description is None:
        return ["Missing required field: description"]
    if not isinstance(description, str):
        return ["description must be a string"]
    if len(description) == 0:
        return ["description cannot be empty"]
    if len(description) > DESCRIPTION_MAX_LENGTH:
        return [
            f"description exceeds {DESCRIPTION_MAX_LENGTH} characters (got {len(description)})"
        ]
    return []


def _validate_compatibility(compatibility: Any) -> list[str]:
    if compatibility is None:
        return []
    if not isinstance(compatibility, str):
        return ["compatibility must be a string"]
    if len(compatibility) > COMPATIBILITY_MAX_LENGTH:
        return [
            f"compatibility exceeds {COMPATIBILITY_MAX_LENGTH} characters "
            f"(got {len(compatibility)})"
        ]
    return []


def _validate_metadata(metadata: Any) -> list[str]:
    if metadata is None:
        return []
    if not isinstance(metadata, Mapping):
        return ["metadata must be an object"]
    return []


def validate_skill_frontmatter(frontmatter: Mapping[str, Any]) -> ValidationResult:
    """Validate parsed frontmatter; errors are ordered name, description, compatibility, metadata."""
    errors: list[str] = []
    errors.extend(_validate_name(frontmatter.get("name")))
    errors.extend(_validate_description(frontmatter.get("description")))
    errors.extend(_validate_compatibility(frontmatter.get("compatibility")))
    errors.extend(_validate_metadata(frontmatter.get("metadata")))
    return ValidationResult(valid=not errors, errors=errors)


def is_valid_skill(frontmatter: Mapping[str, Any]) -> bool:
    return validate_skill_frontmatter(frontmatter).valid
