"""Tests for catalog search scoring and filtering."""

import pytest

from startkit.assets.models import CatalogEntry, Category
from startkit.assets.search import (
    compile_patterns,
    matches_any_tag,
    parse_query,
    parse_search_terms,
    score,
    search_entries,
    search_index,
    search_installed,
    validate_query,
)
from startkit.document import parse
from startkit.errors import ValidationError
from startkit.registry.models import CatalogIndex

INDEX = {
    "agents": {
        "claude": {
            "module": "github.com/acme/assets/agents/claude",
            "description": "Anthropic Claude CLI",
            "tags": ["ai"],
            "bin": "claude",
        },
    },
    "roles": {
        "golang/assistant": {
            "module": "github.com/acme/assets/roles/golang/assistant@v0",
            "description": "Go programming assistant",
            "tags": ["golang"],
        },
    },
    "contexts": {
        "project/readme": {
            "module": "github.com/acme/assets/contexts/project/readme",
            "description": "Project README",
            "tags": ["docs"],
        },
    },
    "tasks": {
        "golang/code-review": {
            "module": "github.com/acme/assets/tasks/golang/code-review",
            "description": "Review Go code for idioms",
            "tags": ["golang", "review"],
        },
        "golang/debug": {
            "module": "github.com/acme/assets/tasks/golang/debug",
            "description": "Debug Go programs",
            "tags": ["golang", "debug"],
        },
        "python/code-review": {
            "module": "github.com/acme/assets/tasks/python/code-review",
            "description": "Review Python code",
            "tags": ["python", "review"],
        },
    },
}

INSTALLED = """tasks: {
	"golang/code-review": {
		origin: "github.com/acme/assets/tasks/golang/code-review@v0.1.0"
		description: "Review Go code for idioms"
		tags: ["golang", "review"]
	}
	local: {
		description: "Hand-written task"
		prompt: "Say hello"
	}
}
"""


def _index() -> CatalogIndex:
    return CatalogIndex.from_dict(INDEX)


def _names(results) -> list[str]:
    return [r.name for r in results]


# --- Query parsing ---


def test_parse_query_splits_and_dedups():
    assert parse_query("Go go,GO  review") == ["Go", "review"]
    assert parse_query(" , ") == []


def test_parse_query_keeps_case_sensitive_escapes():
    assert parse_query(r"\S+ \D") == [r"\S+", r"\D"]


def test_parse_search_terms_lowercases():
    assert parse_search_terms("Golang,REVIEW golang") == ["golang", "review"]


def test_compile_patterns_rejects_invalid_pattern():
    with pytest.raises(ValidationError, match=r"go\["):
        compile_patterns(["ok", "go["])


def test_validate_query():
    with pytest.raises(ValidationError):
        validate_query([], [])
    with pytest.raises(ValidationError):
        validate_query(["ab"], [])
    validate_query(["ab"], ["golang"])
    validate_query([], ["golang"])
    validate_query(["a", "b", "c"], [])


# --- Scoring ---


def test_score_weights():
    entry = CatalogEntry(
        category=Category.TASK,
        name="golang/code-review",
        description="Review Go code for idioms",
        tags=["golang", "review"],
    )
    assert score(entry, compile_patterns(["golang"])) == 4
    assert score(entry, compile_patterns(["review"])) == 5
    assert score(entry, compile_patterns(["golang", "review"])) == 9
    assert score(entry, compile_patterns(["idioms"])) == 1


def test_score_is_zero_when_any_pattern_misses():
    entry = CatalogEntry(category=Category.TASK, name="golang/debug", description="Debug Go programs")
    assert score(entry, compile_patterns(["debug", "python"])) == 0
    assert score(entry, compile_patterns(["debug"])) > 0
    assert score(entry, []) == 0


def test_tag_counts_once_per_pattern():
    entry = CatalogEntry(category=Category.ROLE, name="x", tags=["go-a", "go-b", "go-c"])
    assert score(entry, compile_patterns(["go-"])) == 1


def test_matches_any_tag_is_exact_and_case_insensitive():
    assert matches_any_tag(["Golang", "review"], ["GOLANG"])
    assert not matches_any_tag(["golang"], ["go"])
    assert not matches_any_tag([], ["go"])


# --- Search ---


def test_golang_review_finds_only_code_review():
    results = search_index(_index(), "golang review")
    assert _names(results) == ["golang/code-review"]
    assert results[0].score == 9


def test_results_order_by_score_then_category_then_name():
    results = search_index(_index(), "golang")
    assert _names(results) == ["golang/assistant", "golang/code-review", "golang/debug"]
    assert [r.category for r in results] == [Category.ROLE, Category.TASK, Category.TASK]


def test_higher_score_sorts_first():
    results = search_index(_index(), "review")
    assert _names(results) == ["golang/code-review", "python/code-review"]
    assert results[0].score == results[1].score == 5


def test_tag_only_search_returns_tagged_entries():
    results = search_index(_index(), "", tags=["REVIEW"])
    assert _names(results) == ["golang/code-review", "python/code-review"]
    assert all(r.score == 1 for r in results)


def test_tags_and_query_both_required():
    results = search_index(_index(), "code", tags=["python"])
    assert _names(results) == ["python/code-review"]
    assert results[0].score == 4

    assert search_index(_index(), "debug", tags=["python"]) == []


def test_short_query_allowed_with_tags():
    results = search_index(_index(), "go", tags=["debug"])
    assert _names(results) == ["golang/debug"]


def test_patterns_are_regular_expressions():
    results = search_index(_index(), "^golang/")
    assert _names(results) == ["golang/assistant", "golang/code-review", "golang/debug"]
    assert _names(search_index(_index(), "claude|readme")) == ["claude", "project/readme"]


def test_search_rejects_bad_queries():
    with pytest.raises(ValidationError):
        search_index(_index(), "")
    with pytest.raises(ValidationError):
        search_index(_index(), "go")
    with pytest.raises(ValidationError):
        search_index(_index(), "golang (")


def test_blank_tags_are_ignored():
    with pytest.raises(ValidationError):
        search_index(_index(), "", tags=["", "  "])


def test_every_result_has_positive_score():
    for query in ("golang", "code", "review", "project", "a.*"):
        assert all(r.score > 0 for r in search_index(_index(), query))


# --- Installed ---


def test_search_installed_document():
    doc = parse(INSTALLED)
    results = search_installed(doc, Category.TASK, "hello|hand")
    assert _names(results) == ["local"]

    results = search_installed(doc, Category.TASK, "golang review")
    assert _names(results) == ["golang/code-review"]
    assert results[0].entry.module == "github.com/acme/assets/tasks/golang/code-review@v0.1.0"


def test_installed_and_index_scores_agree():
    doc = parse(INSTALLED)
    installed = search_installed(doc, Category.TASK, "golang review")
    indexed = search_index(_index(), "golang review")
    assert installed[0].score == indexed[0].score


def test_search_installed_missing_block():
    doc = parse(INSTALLED)
    assert search_installed(doc, Category.ROLE, "golang") == []


def test_search_entries_accepts_any_iterable():
    entries = (e for e in _index().entries(Category.AGENT))
    assert _names(search_entries(entries, "claude")) == ["claude"]
