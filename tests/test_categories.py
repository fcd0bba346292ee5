"""
Unit tests for repository categorization.

These tests verify that:
1. Signal strength precedence is topic > keyword > name pattern
2. Category priority breaks ties between equal signals
3. Every repository lands in exactly one category
4. Output order is alphabetical with Uncategorized last
5. Malformed category tables degrade to defaults
"""

import pytest
from datetime import datetime
from starcorn.categories import (
    CATEGORY_DEFINITIONS,
    UNCATEGORIZED,
    CategoryDefinition,
    MatchType,
    SortOption,
    categorize_repo,
    categorize_repos,
    filter_repos,
    get_category_names,
    get_match_type,
    load_category_definitions,
    sort_repos,
)


class TestMatchType:
    """Test the signal strength weights."""

    def test_scores(self):
        assert MatchType.TOPIC.score == 100
        assert MatchType.KEYWORD.score == 50
        assert MatchType.NAME_PATTERN.score == 25
        assert MatchType.NONE.score == 0

    def test_strength_ordering(self):
        ordered = sorted(MatchType, key=lambda m: m.score, reverse=True)
        assert ordered == [
            MatchType.TOPIC,
            MatchType.KEYWORD,
            MatchType.NAME_PATTERN,
            MatchType.NONE,
        ]


class TestGetMatchType:
    """Test per-category signal detection."""

    definition = CategoryDefinition(
        topics=("cli",), keywords=("terminal",), name_patterns=("-cli",), priority=6
    )

    def test_topic_match_is_case_insensitive(self, make_repo):
        repo = make_repo(topics=["CLI"])
        assert get_match_type(repo, self.definition) is MatchType.TOPIC

    def test_topic_requires_exact_match(self, make_repo):
        repo = make_repo(topics=["cli-tools"])
        assert get_match_type(repo, self.definition) is MatchType.NONE

    def test_keyword_in_description(self, make_repo):
        repo = make_repo(description="A fast Terminal emulator")
        assert get_match_type(repo, self.definition) is MatchType.KEYWORD

    def test_keyword_in_name(self, make_repo):
        repo = make_repo(name="terminal-colors")
        assert get_match_type(repo, self.definition) is MatchType.KEYWORD

    def test_name_pattern(self, make_repo):
        repo = make_repo(name="gh-cli", description="GitHub on the command line")
        # "cli" keyword would match the name too, so use a pattern-only definition
        pattern_only = CategoryDefinition(name_patterns=("-cli",))
        assert get_match_type(repo, pattern_only) is MatchType.NAME_PATTERN

    def test_name_pattern_ignores_description(self, make_repo):
        pattern_only = CategoryDefinition(name_patterns=("-cli",))
        repo = make_repo(name="tool", description="wraps the gh-cli")
        assert get_match_type(repo, pattern_only) is MatchType.NONE

    def test_strongest_signal_wins(self, make_repo):
        repo = make_repo(name="my-cli", description="terminal", topics=["cli"])
        assert get_match_type(repo, self.definition) is MatchType.TOPIC


class TestCategorizeRepo:
    """Test single-repository winner selection."""

    def test_topic_beats_higher_priority_keyword(self, make_repo):
        """A topic match wins even against a higher-priority keyword match."""
        repo = make_repo(
            name="gh",
            topics=["cli"],
            description="Uses openai to write commit messages",
        )
        assert categorize_repo(repo) == "Developer Tools"

    def test_priority_breaks_keyword_tie(self, make_repo):
        definitions = load_category_definitions(
            {
                "Low": {"keywords": ["shared"], "priority": 6},
                "High": {"keywords": ["shared"], "priority": 10},
            }
        )
        repo = make_repo(description="a shared helper")
        assert categorize_repo(repo, definitions) == "High"

    def test_priority_breaks_topic_tie(self, make_repo):
        repo = make_repo(topics=["ai", "cli"])
        assert categorize_repo(repo) == "AI & Machine Learning"

    def test_full_tie_uses_table_order(self, make_repo):
        definitions = load_category_definitions(
            {
                "Zeta": {"keywords": ["same"], "priority": 5},
                "Alpha": {"keywords": ["same"], "priority": 5},
            }
        )
        repo = make_repo(description="same same")
        assert categorize_repo(repo, definitions) == "Zeta"

    def test_no_match_is_uncategorized(self, make_repo):
        repo = make_repo(name="zzzz", description="qqqq")
        assert categorize_repo(repo) == UNCATEGORIZED

    def test_name_pattern_match(self, make_repo):
        repo = make_repo(name="brand-assets", description=None)
        assert categorize_repo(repo) == "Design Resources"


class TestCategorizeRepos:
    """Test grouping and output ordering."""

    @pytest.fixture
    def mixed_repos(self, make_repo):
        return [
            make_repo(id=1, name="llama-runner", topics=["llm"]),
            make_repo(id=2, name="slides", description="Presentation tool"),
            make_repo(id=3, name="xyz", description="nothing to see"),
            make_repo(id=4, name="shadcn-extras", description=None),
            make_repo(id=5, name="qwerty", topics=["security"]),
            make_repo(id=6, name="abc"),
        ]

    def test_partition_is_total_and_disjoint(self, mixed_repos):
        categories = categorize_repos(mixed_repos)

        assigned = [repo.id for category in categories for repo in category.repos]
        assert sorted(assigned) == [1, 2, 3, 4, 5, 6]
        assert sum(category.count for category in categories) == len(mixed_repos)

    def test_every_defined_category_is_present(self, mixed_repos):
        categories = categorize_repos(mixed_repos)

        assert {c.name for c in categories} == set(CATEGORY_DEFINITIONS)
        assert len(categories) == len(CATEGORY_DEFINITIONS)

    def test_alphabetical_order_with_uncategorized_last(self, mixed_repos):
        categories = categorize_repos(mixed_repos)
        names = [category.name for category in categories]

        assert names[-1] == UNCATEGORIZED
        assert names[:-1] == sorted(names[:-1], key=lambda n: (n.casefold(), n))
        assert names[0] == "AI & Machine Learning"
        assert names.index("Analytics & Monitoring") < names.index("APIs & Backend")

    def test_uncategorized_last_even_when_empty(self, make_repo):
        categories = categorize_repos([make_repo(topics=["llm"])])

        assert categories[-1].name == UNCATEGORIZED
        assert categories[-1].repos == []

    def test_empty_input(self):
        categories = categorize_repos([])

        assert all(category.repos == [] for category in categories)
        assert categories[-1].name == UNCATEGORIZED

    def test_assignments(self, mixed_repos):
        by_name = {c.name: [r.id for r in c.repos] for c in categorize_repos(mixed_repos)}

        assert by_name["AI & Machine Learning"] == [1]
        assert by_name["Presentations"] == [2]
        assert by_name["UI Components"] == [4]
        assert by_name["Security"] == [5]
        assert by_name[UNCATEGORIZED] == [3, 6]

    def test_private_repositories_are_dropped(self, make_repo):
        repos = [make_repo(id=1, topics=["llm"]), make_repo(id=2, private=True)]

        categories = categorize_repos(repos)
        assigned = [repo.id for category in categories for repo in category.repos]

        assert assigned == [1]

    def test_deterministic(self, mixed_repos):
        first = [(c.name, [r.id for r in c.repos]) for c in categorize_repos(mixed_repos)]
        second = [(c.name, [r.id for r in c.repos]) for c in categorize_repos(mixed_repos)]
        assert first == second


class TestCategoryDefinitions:
    """Test the category table and its loader."""

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            CATEGORY_DEFINITIONS["New"] = CategoryDefinition()

    def test_uncategorized_is_reserved(self):
        definition = CATEGORY_DEFINITIONS[UNCATEGORIZED]
        assert definition.priority == 0
        assert definition.topics == ()
        assert definition.keywords == ()
        assert definition.name_patterns == ()

    def test_missing_priority_defaults_to_zero(self):
        definitions = load_category_definitions({"Loose": {"topics": ["x"]}})
        assert definitions["Loose"].priority == 0

    def test_malformed_entries_do_not_raise(self):
        definitions = load_category_definitions(
            {
                "Null": None,
                "Bad priority": {"priority": "high", "keywords": None},
            }
        )

        assert definitions["Null"] == CategoryDefinition()
        assert definitions["Bad priority"].priority == 0
        assert UNCATEGORIZED in definitions

    def test_get_category_names(self):
        names = get_category_names()
        assert names[0] == "AI & Machine Learning"
        assert names[-1] == UNCATEGORIZED


class TestFilterAndSort:
    """Test filtering and sorting helpers."""

    def test_filter_matches_full_name_and_description(self, make_repo):
        repos = [
            make_repo(id=1, name="alpha", owner="Acme"),
            make_repo(id=2, name="beta", description="Made by ACME"),
            make_repo(id=3, name="gamma"),
        ]

        assert [r.id for r in filter_repos(repos, "acme")] == [1, 2]

    def test_blank_filter_returns_input(self, make_repo):
        repos = [make_repo()]
        assert filter_repos(repos, "  ") is repos

    def test_sort_by_stars(self, make_repo):
        repos = [make_repo(id=1, stars=5), make_repo(id=2, stars=50), make_repo(id=3, stars=20)]

        assert [r.id for r in sort_repos(repos, SortOption.STARS_DESC)] == [2, 3, 1]
        assert [r.id for r in sort_repos(repos, "stars-asc")] == [1, 3, 2]

    def test_sort_by_name(self, make_repo):
        repos = [make_repo(id=1, name="b"), make_repo(id=2, name="A"), make_repo(id=3, name="c")]

        assert [r.id for r in sort_repos(repos, SortOption.NAME_ASC)] == [2, 1, 3]
        assert [r.id for r in sort_repos(repos, SortOption.NAME_DESC)] == [3, 1, 2]

    def test_sort_by_updated(self, make_repo):
        repos = [
            make_repo(id=1, updated_at=datetime(2024, 1, 1)),
            make_repo(id=2, updated_at=None),
            make_repo(id=3, updated_at=datetime(2025, 1, 1)),
        ]

        assert [r.id for r in sort_repos(repos, SortOption.UPDATED_DESC)] == [3, 1, 2]
        assert [r.id for r in sort_repos(repos, SortOption.UPDATED_ASC)] == [2, 1, 3]

    def test_sort_by_language(self, make_repo):
        repos = [
            make_repo(id=1, language=None, stars=100),
            make_repo(id=2, language="Rust", stars=1),
            make_repo(id=3, language="Go", stars=5),
            make_repo(id=4, language="Rust", stars=9),
        ]

        assert [r.id for r in sort_repos(repos, SortOption.LANGUAGE)] == [3, 4, 2, 1]

    def test_sort_returns_new_list(self, make_repo):
        repos = [make_repo(id=1), make_repo(id=2)]
        assert sort_repos(repos, SortOption.STARS_DESC) is not repos
