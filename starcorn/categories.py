"""
Purpose-based categorization of starred repositories.

Each repository is matched against every category definition using three
signal types, strongest first:

1. Topics (100): exact, case-insensitive match on a GitHub topic
2. Keywords (50): substring of the lowercased name or description
3. Name patterns (25): substring of the lowercased name only

When several categories match, the stronger signal wins; equal signals are
broken by category priority, and equal priorities by table order. A
repository that matches nothing lands in "Uncategorized".

Categories describe what a project does, not what it is built with, so
framework topics such as "react" or "vue" are not used as signals.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .domain import Repository

UNCATEGORIZED = "Uncategorized"


class MatchType(enum.Enum):
    """The kind of signal that matched a repository to a category."""

    TOPIC = "topic"
    KEYWORD = "keyword"
    NAME_PATTERN = "namePattern"
    NONE = "none"

    @property
    def score(self) -> int:
        return _MATCH_SCORES[self]


_MATCH_SCORES = {
    MatchType.TOPIC: 100,
    MatchType.KEYWORD: 50,
    MatchType.NAME_PATTERN: 25,
    MatchType.NONE: 0,
}


@dataclass(frozen=True)
class CategoryDefinition:
    """Immutable matching rules for one category."""

    topics: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()
    name_patterns: Tuple[str, ...] = ()
    priority: int = 0

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "CategoryDefinition":
        """
        Build a definition from a loosely-typed mapping.

        Missing or null entries fall back to their defaults (no rules,
        priority 0) rather than raising.
        """
        priority = raw.get("priority")
        try:
            priority = int(priority) if priority is not None else 0
        except (TypeError, ValueError):
            priority = 0
        return cls(
            topics=_lowered(raw.get("topics")),
            keywords=_lowered(raw.get("keywords")),
            name_patterns=_lowered(raw.get("namePatterns") or raw.get("name_patterns")),
            priority=priority,
        )


@dataclass
class Category:
    """A category name with the repositories assigned to it."""

    name: str
    repos: List[Repository] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.repos)


def _lowered(values: Optional[Iterable[str]]) -> Tuple[str, ...]:
    if not values:
        return ()
    return tuple(str(value).lower() for value in values)


def load_category_definitions(
    raw: Mapping[str, Mapping[str, Any]]
) -> Mapping[str, CategoryDefinition]:
    """Freeze a raw category table, guaranteeing an Uncategorized entry."""
    definitions: Dict[str, CategoryDefinition] = {
        name: CategoryDefinition.from_mapping(rules or {})
        for name, rules in raw.items()
    }
    definitions.setdefault(UNCATEGORIZED, CategoryDefinition(priority=0))
    return MappingProxyType(definitions)


# fmt: off
CATEGORY_DEFINITIONS = load_category_definitions({
    "AI & Machine Learning": {
        "topics": ["ai", "machine-learning", "deep-learning", "llm", "gpt", "nlp", "neural-network", "generative-ai", "computer-vision", "transformers"],
        "keywords": ["machine-learning", "deep-learning", "neural", "openai", "anthropic", "langchain", "diffusion", "stable-diffusion", "image-generation", "text-generation", "llm", "chatgpt", "ollama"],
        "namePatterns": ["-agent", "agent-", "-ai", "ai-"],
        "priority": 10,
    },
    "Analytics & Monitoring": {
        "topics": ["analytics", "monitoring", "observability", "metrics", "telemetry", "logging", "apm", "product-analytics", "web-analytics"],
        "keywords": ["analytics", "monitoring", "metrics", "telemetry", "observability", "posthog", "plausible", "matomo", "sentry"],
        "priority": 8,
    },
    "APIs & Backend": {
        "topics": ["api", "backend", "server", "rest", "graphql", "rest-api", "http-server"],
        "keywords": ["backend", "graphql", "endpoint", "express", "fastapi", "nestjs", "hono", "trpc", "http-framework"],
        "priority": 6,
    },
    "Data & Visualization": {
        "topics": ["data-visualization", "charts", "charting", "visualization", "plotting"],
        "keywords": ["chart", "d3js", "plotly", "recharts", "visualization", "graph", "unovis"],
        "priority": 6,
    },
    "Design Resources": {
        "topics": ["icons", "svg", "fonts", "assets", "design-resources", "logos", "illustrations"],
        "keywords": ["icons", "svg-icons", "fonts", "logo", "logos", "illustrations", "icon-pack"],
        "namePatterns": ["-icons", "-assets"],
        "priority": 7,
    },
    "Developer Tools": {
        "topics": ["developer-tools", "devtools", "cli", "tooling", "productivity-tools", "developer-tool"],
        "keywords": ["cli", "debug", "lint", "format", "editor", "terminal", "eslint", "prettier"],
        "namePatterns": ["-cli"],
        "priority": 6,
    },
    "Documentation": {
        "topics": ["documentation", "docs", "wiki", "awesome-list", "learning", "style-guide", "documentation-tool", "documentation-generator"],
        "keywords": ["documentation", "styleguide", "style-guide", "tutorial", "awesome", "cheatsheet", "handbook", "guidelines"],
        "namePatterns": ["awesome-", "-guide", "-styleguide", "-docs"],
        "priority": 7,
    },
    "Infrastructure & DevOps": {
        "topics": ["devops", "infrastructure", "ci-cd", "cloud", "deployment", "hosting", "kubernetes"],
        "keywords": ["terraform", "ansible", "cicd", "github-actions", "jenkins", "k8s", "kubernetes", "docker-compose"],
        "priority": 7,
    },
    "Mobile": {
        "topics": ["mobile", "ios", "android", "react-native", "flutter", "mobile-app"],
        "keywords": ["react-native", "flutter", "swift", "kotlin", "expo"],
        "priority": 8,
    },
    "Presentations": {
        "topics": ["presentation", "slides", "slideshow", "keynote"],
        "keywords": ["presentation", "slides", "slideshow", "speaker", "slidev"],
        "namePatterns": ["-slides", "-deck"],
        "priority": 9,
    },
    "Productivity": {
        "topics": ["productivity", "automation", "workflow", "note-taking", "task-management"],
        "keywords": ["automate", "workflow", "productivity", "todo", "note-taking", "whiteboard", "collaboration"],
        "priority": 5,
    },
    "Runtime & Build Tools": {
        "topics": ["runtime", "bundler", "compiler", "transpiler", "build-tool", "package-manager"],
        "keywords": ["runtime", "bundler", "compiler", "transpiler", "esbuild", "webpack", "vite", "rollup", "parcel", "turbopack"],
        "priority": 9,
    },
    "Security": {
        "topics": ["security", "cryptography", "authentication", "encryption", "cybersecurity", "pentesting", "auth"],
        "keywords": ["security", "authentication", "encryption", "password", "oauth", "jwt", "auth", "2fa"],
        "priority": 8,
    },
    "UI Components": {
        "topics": ["ui", "components", "design-system", "component-library", "ui-components", "ui-library"],
        "keywords": ["shadcn", "radix", "headless-ui", "ui-kit"],
        "namePatterns": ["-ui", "-components", "ui-"],
        "priority": 8,
    },
    "Utilities": {
        "topics": ["utility", "utilities", "toolkit", "tools"],
        "keywords": ["pdf", "converter", "generator", "calculator", "invoice", "screenshot", "snippet"],
        "namePatterns": ["-tool", "-utils", "-utility"],
        "priority": 5,
    },
    UNCATEGORIZED: {
        "priority": 0,
    },
})
# fmt: on


def get_match_type(repo: Repository, definition: CategoryDefinition) -> MatchType:
    """Return the strongest signal linking ``repo`` to ``definition``."""
    topics = repo.lower_topics
    name = repo.name.lower()
    description = (repo.description or "").lower()

    if any(topic in topics for topic in definition.topics):
        return MatchType.TOPIC
    if any(kw in name or kw in description for kw in definition.keywords):
        return MatchType.KEYWORD
    if any(pattern in name for pattern in definition.name_patterns):
        return MatchType.NAME_PATTERN
    return MatchType.NONE


def categorize_repo(
    repo: Repository,
    definitions: Mapping[str, CategoryDefinition] = CATEGORY_DEFINITIONS,
) -> str:
    """Pick the single best category name for ``repo``."""
    best_name = UNCATEGORIZED
    best_key = (MatchType.NONE.score, 0)

    for name, definition in definitions.items():
        if name == UNCATEGORIZED:
            continue
        match_type = get_match_type(repo, definition)
        if match_type is MatchType.NONE:
            continue
        key = (match_type.score, definition.priority)
        # Strict comparison keeps the earliest table entry on a full tie.
        if best_name == UNCATEGORIZED or key > best_key:
            best_name, best_key = name, key

    return best_name


def _category_sort_key(name: str) -> Tuple[str, str]:
    return (name.casefold(), name)


def categorize_repos(
    repos: Iterable[Repository],
    definitions: Mapping[str, CategoryDefinition] = CATEGORY_DEFINITIONS,
) -> List[Category]:
    """
    Partition ``repos`` into categories.

    Every category in ``definitions`` is returned, empty or not, sorted by
    name with Uncategorized always last. Private repositories are dropped.
    """
    groups: Dict[str, List[Repository]] = {name: [] for name in definitions}
    groups.setdefault(UNCATEGORIZED, [])

    for repo in repos:
        if repo.private:
            continue
        groups[categorize_repo(repo, definitions)].append(repo)

    categories = [
        Category(name=name, repos=members)
        for name, members in groups.items()
        if name != UNCATEGORIZED
    ]
    categories.sort(key=lambda category: _category_sort_key(category.name))
    categories.append(Category(name=UNCATEGORIZED, repos=groups[UNCATEGORIZED]))
    return categories


def get_category_names(
    definitions: Mapping[str, CategoryDefinition] = CATEGORY_DEFINITIONS,
) -> List[str]:
    return list(definitions)


def filter_repos(repos: List[Repository], query: str) -> List[Repository]:
    """Keep repositories whose full name or description contains ``query``."""
    if not query.strip():
        return repos

    needle = query.lower()
    return [
        repo
        for repo in repos
        if needle in repo.full_name.lower()
        or needle in (repo.description or "").lower()
    ]


class SortOption(str, enum.Enum):
    NAME_ASC = "name-asc"
    NAME_DESC = "name-desc"
    STARS_DESC = "stars-desc"
    STARS_ASC = "stars-asc"
    UPDATED_DESC = "updated-desc"
    UPDATED_ASC = "updated-asc"
    LANGUAGE = "language"


def sort_repos(repos: Iterable[Repository], option: SortOption) -> List[Repository]:
    """Return a new list of ``repos`` ordered by ``option``."""
    option = SortOption(option)
    repos = list(repos)

    if option is SortOption.NAME_ASC:
        return sorted(repos, key=lambda r: r.full_name.casefold())
    if option is SortOption.NAME_DESC:
        return sorted(repos, key=lambda r: r.full_name.casefold(), reverse=True)
    if option is SortOption.STARS_DESC:
        return sorted(repos, key=lambda r: r.stars, reverse=True)
    if option is SortOption.STARS_ASC:
        return sorted(repos, key=lambda r: r.stars)
    if option in (SortOption.UPDATED_DESC, SortOption.UPDATED_ASC):
        # Repositories without a timestamp sort as the oldest.
        return sorted(
            repos,
            key=lambda r: r.updated_at or datetime.min,
            reverse=option is SortOption.UPDATED_DESC,
        )
    return sorted(
        repos,
        key=lambda r: (r.language is None, (r.language or "").casefold(), -r.stars),
    )
