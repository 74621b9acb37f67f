"""Slug and path string algorithms.

Hierarchical slugs use `/` to encode heading nesting (`api/auth/jwt`). All
functions here are pure; none of them touch the document provider.
"""

from __future__ import annotations

import re

from spec_docs.types import HierarchicalSlug, SlugPathOperation

ROOT_NAMESPACE = "root"
MAX_SLUG_DEPTH = 10

_SLUG_STRIP = re.compile(r"[^\w\- ]", flags=re.UNICODE)
_SLUG_COMPONENT = re.compile(r"^(?:[a-z0-9]|[a-z0-9][a-z0-9_-]*[a-z0-9])$")
_REPEATED_SLASHES = re.compile(r"/+")


def title_to_slug(title: str) -> str:
    """Convert a heading title to its anchor slug.

    Lowercases, drops punctuation other than `-` and `_`, and turns spaces
    into hyphens. The transform is stateless, so equal titles always map to
    the same slug.
    """

    if not isinstance(title, str) or not title.strip():
        raise ValueError("Title must be a non-empty string")
    return _SLUG_STRIP.sub("", title.strip().lower()).replace(" ", "-")


def normalize_slug_path(slug_path: str) -> str:
    if not isinstance(slug_path, str):
        return ""
    normalized = slug_path.strip().strip("/")
    return _REPEATED_SLASHES.sub("/", normalized)


def split_slug_path(slug_path: str) -> list[str]:
    normalized = normalize_slug_path(slug_path)
    if not normalized:
        return []
    return [part for part in normalized.split("/") if part]


def join_slug_path(parts: list[str]) -> str:
    return "/".join(part for part in parts if isinstance(part, str) and part.strip())


def generate_hierarchical_slug(parent_slug: str, child_title: str) -> str:
    child_slug = title_to_slug(child_title)
    parent = normalize_slug_path(parent_slug)
    return f"{parent}/{child_slug}" if parent else child_slug


def get_slug_depth(slug_path: str) -> int:
    return len(split_slug_path(slug_path))


def get_parent_slug(slug_path: str) -> str | None:
    parts = split_slug_path(slug_path)
    if len(parts) <= 1:
        return None
    return join_slug_path(parts[:-1])


def get_slug_leaf(slug_path: str) -> str:
    parts = split_slug_path(slug_path)
    return parts[-1] if parts else ""


def create_hierarchical_slug(slug_path: str) -> HierarchicalSlug:
    normalized = normalize_slug_path(slug_path)
    parts = split_slug_path(normalized)
    return HierarchicalSlug(
        full=normalized,
        parts=parts,
        depth=len(parts),
        parent=get_parent_slug(normalized),
    )


def is_slug_ancestor(ancestor_slug: str, descendant_slug: str) -> bool:
    ancestor = split_slug_path(ancestor_slug)
    descendant = split_slug_path(descendant_slug)
    if len(ancestor) >= len(descendant):
        return False
    return descendant[: len(ancestor)] == ancestor


def is_direct_child(parent_slug: str, child_slug: str) -> bool:
    parent = split_slug_path(parent_slug)
    child = split_slug_path(child_slug)
    return len(child) == len(parent) + 1 and child[: len(parent)] == parent


def get_direct_children(parent_slug: str, all_slugs: list[str]) -> list[str]:
    return [slug for slug in all_slugs if is_direct_child(parent_slug, slug)]


def get_all_descendants(ancestor_slug: str, all_slugs: list[str]) -> list[str]:
    return [slug for slug in all_slugs if is_slug_ancestor(ancestor_slug, slug)]


def get_relative_slug_path(from_slug: str, to_slug: str) -> SlugPathOperation:
    """Compute a `../`-style path from one slug to another.

    `api/auth` to `api/tokens` gives `../tokens`; identical slugs give `.`.
    """

    from_parts = split_slug_path(from_slug)
    to_parts = split_slug_path(to_slug)

    common = 0
    while (
        common < len(from_parts)
        and common < len(to_parts)
        and from_parts[common] == to_parts[common]
    ):
        common += 1

    relative = "../" * (len(from_parts) - common) + "/".join(to_parts[common:])
    return SlugPathOperation(success=True, result=relative or ".")


def is_valid_slug_component(part: str) -> bool:
    return bool(_SLUG_COMPONENT.match(part))


def validate_slug_path(slug_path: str) -> SlugPathOperation:
    if not isinstance(slug_path, str):
        return SlugPathOperation(
            success=False,
            error="Slug path must be a string",
            context={"slug_path": slug_path, "type": type(slug_path).__name__},
        )
    if not slug_path.strip():
        return SlugPathOperation(
            success=False,
            error="Slug path cannot be empty",
            context={"slug_path": slug_path},
        )

    normalized = normalize_slug_path(slug_path)
    parts = split_slug_path(normalized)
    for part in parts:
        if not is_valid_slug_component(part):
            return SlugPathOperation(
                success=False,
                error=(
                    f"Invalid slug component: {part}. Must contain only lowercase "
                    "letters, numbers, hyphens and underscores"
                ),
                context={"slug_path": slug_path, "invalid_part": part},
            )
    if len(parts) > MAX_SLUG_DEPTH:
        return SlugPathOperation(
            success=False,
            error=f"Slug path too deep (maximum {MAX_SLUG_DEPTH} levels)",
            context={"slug_path": slug_path, "depth": len(parts)},
        )
    return SlugPathOperation(success=True, result=normalized)


def path_to_namespace(doc_path: str) -> str:
    """`/api/specs/auth.md` -> `api/specs`; top-level documents map to `root`."""

    parts = [part for part in doc_path.split("/") if part not in ("", ".")]
    if parts and parts[-1].endswith(".md"):
        parts.pop()
    return "/".join(parts) or ROOT_NAMESPACE


def path_to_slug(doc_path: str) -> str:
    parts = [part for part in doc_path.split("/") if part not in ("", ".")]
    if not parts:
        return ""
    name = parts[-1]
    return name[:-3] if name.endswith(".md") else name
