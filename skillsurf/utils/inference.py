"""Keyword heuristics mapping skill frontmatter to a category and tags.

Matching is plain substring search on lower-cased text, so "reactive"
tags as ``react`` and "building" hits ``ui``. That is the observable
behaviour of the directory and is kept as is.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

# Order matters: the first category with a keyword hit wins.
CATEGORY_KEYWORDS: dict[str, list[str]] = {
    "ios-swift": ["swift", "ios", "swiftui", "xcode", "apple", "macos"],
    "react-web": ["react", "next", "nextjs", "web", "javascript", "typescript", "vercel"],
    "documents": ["pdf", "docx", "xlsx", "pptx", "document", "excel", "word", "powerpoint"],
    "design": ["design", "ui", "ux", "figma", "css", "tailwind", "style"],
    "devops": ["deploy", "ci", "cd", "docker", "kubernetes", "aws", "cloud"],
    "creative": ["art", "music", "creative", "generate", "image"],
    "enterprise": ["enterprise", "business", "workflow", "communication"],
}

COMMON_TAGS: list[str] = [
    "react",
    "swift",
    "ios",
    "web",
    "pdf",
    "api",
    "test",
    "deploy",
    "design",
    "ai",
    "llm",
    "code",
    "review",
]

SKILL_CATEGORIES: list[tuple[str, str]] = [
    ("ios-swift", "iOS / Swift"),
    ("react-web", "React / Web"),
    ("documents", "Documents"),
    ("design", "Design"),
    ("devops", "DevOps"),
    ("creative", "Creative"),
    ("enterprise", "Enterprise"),
]


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def infer_category(frontmatter: Mapping[str, Any]) -> str | None:
    text = f"{_text(frontmatter.get('name'))} {_text(frontmatter.get('description'))}".lower()
    for category, keywords in CATEGORY_KEYWORDS.items():
        if any(kw in text for kw in keywords):
            return category
    return None


def infer_tags(frontmatter: Mapping[str, Any]) -> set[str]:
    words = _text(frontmatter.get("description")).lower().split()
    return {tag for tag in COMMON_TAGS if any(tag in word for word in words)}
