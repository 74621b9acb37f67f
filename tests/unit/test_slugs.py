import pytest

from spec_docs.addressing.slugs import (
    create_hierarchical_slug,
    generate_hierarchical_slug,
    get_all_descendants,
    get_direct_children,
    get_parent_slug,
    get_relative_slug_path,
    get_slug_depth,
    get_slug_leaf,
    is_direct_child,
    is_slug_ancestor,
    normalize_slug_path,
    path_to_namespace,
    path_to_slug,
    title_to_slug,
    validate_slug_path,
)


def test_title_to_slug_lowercases_and_hyphenates() -> None:
    assert title_to_slug("User Authentication") == "user-authentication"
    assert title_to_slug("  API: Tokens & Keys!  ") == "api-tokens--keys"
    assert title_to_slug("snake_case stays") == "snake_case-stays"


def test_title_to_slug_rejects_blank_titles() -> None:
    with pytest.raises(ValueError):
        title_to_slug("   ")


def test_hierarchy_helpers() -> None:
    assert is_direct_child("api/auth", "api/auth/jwt")
    assert not is_direct_child("api", "api/auth/jwt")
    assert get_parent_slug("api/auth/jwt") == "api/auth"
    assert get_parent_slug("api") is None
    assert get_slug_depth("a/b/c") == 3
    assert get_slug_leaf("a/b/c") == "c"
    assert is_slug_ancestor("api", "api/auth/jwt")
    assert not is_slug_ancestor("api/auth", "api/auth")


def test_normalize_slug_path_collapses_separators() -> None:
    assert normalize_slug_path("//api///auth/") == "api/auth"
    assert generate_hierarchical_slug("api/", "JWT Tokens") == "api/jwt-tokens"
    assert generate_hierarchical_slug("", "Overview") == "overview"


def test_children_and_descendants() -> None:
    slugs = ["api", "api/auth", "api/auth/jwt", "api/users", "guides"]

    assert get_direct_children("api", slugs) == ["api/auth", "api/users"]
    assert get_all_descendants("api", slugs) == ["api/auth", "api/auth/jwt", "api/users"]


def test_relative_slug_path() -> None:
    assert get_relative_slug_path("api/auth", "api/tokens").result == "../tokens"
    assert get_relative_slug_path("api/auth", "api/auth/jwt").result == "jwt"
    assert get_relative_slug_path("api/auth", "api/auth").result == "."


def test_validate_slug_path_reports_errors_as_data() -> None:
    ok = validate_slug_path("/api/auth-flow/")
    assert ok.success and ok.result == "api/auth-flow"

    bad = validate_slug_path("api/-leading")
    assert not bad.success
    assert bad.context["invalid_part"] == "-leading"

    too_deep = validate_slug_path("/".join("abcdefghijk"))
    assert not too_deep.success
    assert too_deep.context["depth"] == 11

    assert not validate_slug_path("  ").success


def test_create_hierarchical_slug() -> None:
    slug = create_hierarchical_slug("api/auth/jwt")

    assert slug.parts == ["api", "auth", "jwt"]
    assert slug.depth == 3
    assert slug.parent == "api/auth"


def test_document_path_helpers() -> None:
    assert path_to_namespace("/api/specs/auth.md") == "api/specs"
    assert path_to_namespace("/guide.md") == "root"
    assert path_to_slug("/api/specs/auth.md") == "auth"
