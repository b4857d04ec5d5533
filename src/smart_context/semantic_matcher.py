# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Prompt-to-file relevance scoring.

The matcher extracts entities, keywords, file-type hints and technical
concepts from a natural-language prompt, then scores every candidate file
with an additive heuristic over its name, directory and content.

Score composition (per file):
- entity in file name: +2.0 (direct match)
- entity in content: +1.0 (semantic match unless already direct)
- file-type hint matches extension or name: +0.5
- concept in file name / content: +1.5 / +0.8
- keyword in file name / content: +0.3 / +0.2
- structural prior from path (see STRUCTURAL_PATTERNS)
- Jaccard similarity of prompt and content words (>3 chars): x0.5
Then x0.8 for content over 100 KB, x0.9 under 0.5 KB, capped at 10.
"""

import logging
import posixpath
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence, Set

from smart_context.file_access import FileAccess, LocalFileAccess
from smart_context.models import EntityExtraction, MatchStatistics, MatchType, SemanticMatch

logger = logging.getLogger(__name__)

MAX_RELEVANCE_SCORE = 10.0

FILENAME_PATTERN = re.compile(r"(\w+\.(?:ts|tsx|js|jsx|py|java|cpp|c|cs|json|md))\b", re.IGNORECASE)
ENTITY_PATTERNS = [
    FILENAME_PATTERN,
    re.compile(r"\b([A-Z][a-zA-Z0-9]*)\b"),  # CamelCase
    re.compile(r"\b([a-z][a-zA-Z0-9]*)\b"),  # camelCase
    re.compile(r"\b([a-z_][a-z0-9_]*)\b"),  # snake_case
]

EXTENSION_HINT_PATTERN = re.compile(r"\.([a-z]{2,4})\b")
LANGUAGE_HINT_PATTERN = re.compile(
    r"\b(typescript|javascript|python|java|cpp|react|vue|angular)\b"
)

STOPWORDS = frozenset(
    [
        "the", "and", "or", "but", "for", "with", "from", "to", "in", "on", "at", "by",
        "this", "that", "these", "those", "into", "onto", "are", "was", "were", "has",
        "have", "had", "not", "can", "could", "should", "would", "will", "its", "our",
        "your", "their", "there", "here", "when", "where", "which", "what", "who", "how",
        "all", "any", "some", "please", "also", "than", "then", "them", "they", "you",
    ]
)

TECHNICAL_CONCEPTS = (
    "component", "service", "controller", "model", "view", "handler", "processor",
    "utility", "helper", "config", "setting", "test", "spec", "mock", "auth",
    "authentication", "authorization", "login", "user", "session", "api", "endpoint",
    "route", "middleware", "database", "query", "style", "css", "scss", "theme",
    "layout", "ui", "interface", "hook", "context", "provider", "store", "state",
    "action", "reducer", "import", "export", "module", "package", "dependency",
    "library",
)

ACTION_WORDS = (
    "create", "build", "make", "generate", "add", "implement", "develop", "update",
    "modify", "change", "edit", "fix", "refactor", "optimize", "delete", "remove",
    "clean", "move", "rename", "copy", "test", "validate", "check", "verify", "debug",
    "trace",
)

# Path substrings that mark a file as structurally important, with their bonus
STRUCTURAL_PATTERNS: Dict[str, float] = {
    "index": 1.5,
    "main": 1.5,
    "app": 1.2,
    "component": 1.0,
    "widget": 1.0,
    "service": 1.0,
    "util": 0.8,
    "helper": 0.8,
    "config": 0.8,
    "setting": 0.8,
    "test": 0.5,
    "spec": 0.5,
    "mock": 0.3,
}
IMPORTANT_DIRECTORIES = ("src", "components", "pages", "services", "utils", "lib")
IMPORTANT_DIRECTORY_BONUS = 0.3

# Extension (without dot) -> multiplier of the 0.5 base context importance
EXTENSION_IMPORTANCE: Dict[str, float] = {
    "ts": 1.0,
    "tsx": 1.0,
    "js": 0.9,
    "jsx": 0.9,
    "py": 0.9,
    "java": 0.8,
    "cpp": 0.8,
    "json": 0.7,
    "md": 0.4,
}
DEFAULT_EXTENSION_IMPORTANCE = 0.5

LARGE_CONTENT_KB = 100
SMALL_CONTENT_KB = 0.5


def _significant_words(text: str) -> Set[str]:
    return {word for word in text.split() if len(word) > 3}


def text_similarity(text1: str, text2: str) -> float:
    """Jaccard similarity of the whitespace words longer than 3 characters."""
    if not text1 or not text2:
        return 0.0

    words1 = _significant_words(text1)
    words2 = _significant_words(text2)
    if not words1 or not words2:
        return 0.0

    return len(words1 & words2) / len(words1 | words2)


def structural_score(file_path: str) -> float:
    """Path-based prior: structural patterns plus important directory bonuses."""
    file_name = posixpath.basename(file_path).lower()
    dir_name = posixpath.dirname(file_path).lower()

    score = 0.0
    for pattern, bonus in STRUCTURAL_PATTERNS.items():
        if pattern in file_name or pattern in dir_name:
            score += bonus

    for directory in IMPORTANT_DIRECTORIES:
        if directory in dir_name:
            score += IMPORTANT_DIRECTORY_BONUS

    return score


def context_importance(file_path: str) -> float:
    """Importance of a file as context, independent of the prompt, in [0, 1]."""
    file_name = posixpath.basename(file_path).lower()
    extension = posixpath.splitext(file_name)[1].lstrip(".")

    importance = 0.5 * EXTENSION_IMPORTANCE.get(extension, DEFAULT_EXTENSION_IMPORTANCE)
    if "index" in file_name:
        importance += 0.3
    if "main" in file_name:
        importance += 0.3
    if "app" in file_name:
        importance += 0.2

    return min(importance, 1.0)


class SemanticMatcher:
    """Scores files against a prompt.

    Stateless apart from its collaborators; results are cached by the caller.
    """

    def __init__(self, file_access: Optional[FileAccess] = None, max_workers: int = 8):
        """Initialize the matcher.

        Args:
            file_access: File access backend (default: LocalFileAccess).
            max_workers: Upper bound on concurrent file reads.
        """
        self.file_access = file_access if file_access is not None else LocalFileAccess()
        self.max_workers = max(1, max_workers)

    def extract_entities(self, prompt: str) -> EntityExtraction:
        """Extract entities, keywords, file-type hints and concepts from a prompt.

        Entities are tokens longer than 2 characters matching the filename,
        CamelCase, camelCase or snake_case patterns, minus stopwords.
        Extension hints only count when the extension stands alone; the
        extension of a mentioned file name is part of that entity.
        """
        extraction = EntityExtraction()
        normalized_prompt = prompt.lower()

        for pattern in ENTITY_PATTERNS:
            for match in pattern.finditer(prompt):
                entity = match.group(1)
                if len(entity) > 2 and entity.lower() not in STOPWORDS:
                    extraction.entities.add(entity)

        without_file_names = FILENAME_PATTERN.sub(" ", normalized_prompt)
        for match in EXTENSION_HINT_PATTERN.finditer(without_file_names):
            extraction.file_types.add(match.group(1))
        for match in LANGUAGE_HINT_PATTERN.finditer(normalized_prompt):
            extraction.file_types.add(match.group(1))

        for concept in TECHNICAL_CONCEPTS + ACTION_WORDS:
            if concept in normalized_prompt:
                extraction.concepts.add(concept)

        extraction.keywords.update(
            word for word in normalized_prompt.split() if len(word) > 3 and word not in STOPWORDS
        )

        return extraction

    def find_matches(self, prompt: str, files: Sequence[str], root: str = ".") -> List[SemanticMatch]:
        """Score every file and return those with a positive score.

        Files whose analysis fails are logged and skipped.

        Returns:
            Matches sorted by relevance (highest first), ties broken by path.
        """
        extraction = self.extract_entities(prompt)
        unique_files = sorted(set(files))
        if not unique_files:
            return []

        def analyze(path: str) -> Optional[SemanticMatch]:
            try:
                return self.analyze_file_relevance(path, extraction, prompt, root)
            except Exception as e:
                logger.warning(f"Failed to analyze relevance of {path}: {e}")
                return None

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(unique_files))) as executor:
            results = list(executor.map(analyze, unique_files))

        matches = [match for match in results if match is not None and match.relevance_score > 0]
        matches.sort(key=lambda m: (-m.relevance_score, m.file_path))

        logger.debug(f"Semantic matching: {len(matches)}/{len(unique_files)} files relevant")
        return matches

    def analyze_file_relevance(
        self, file_path: str, extraction: EntityExtraction, prompt: str, root: str = "."
    ) -> SemanticMatch:
        """Score one file against an extraction of prompt.

        Unreadable files are scored from their path alone.
        """
        try:
            content = self.file_access.read_text(root, file_path)
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"Scoring {file_path} by name only: {e}")
            content = ""

        file_name = posixpath.basename(file_path).lower()
        extension = posixpath.splitext(file_name)[1].lstrip(".")
        normalized_content = content.lower()

        score = 0.0
        matched: Set[str] = set()
        match_type = MatchType.STRUCTURAL

        for entity in extraction.entities:
            normalized_entity = entity.lower()
            if normalized_entity in file_name:
                score += 2.0
                matched.add(entity)
                match_type = MatchType.DIRECT
            if normalized_entity in normalized_content:
                score += 1.0
                matched.add(entity)
                if match_type == MatchType.STRUCTURAL:
                    match_type = MatchType.SEMANTIC

        for file_type in extraction.file_types:
            if extension == file_type or file_type in file_name:
                score += 0.5

        for concept in extraction.concepts:
            if concept in file_name:
                score += 1.5
                matched.add(concept)
            if concept in normalized_content:
                score += 0.8
                matched.add(concept)

        for keyword in extraction.keywords:
            if keyword in file_name:
                score += 0.3
            if keyword in normalized_content:
                score += 0.2

        score += structural_score(file_path)

        if content:
            score += text_similarity(prompt.lower(), normalized_content) * 0.5

            size_kb = len(content) / 1024
            if size_kb > LARGE_CONTENT_KB:
                score *= 0.8
            elif size_kb < SMALL_CONTENT_KB:
                score *= 0.9

        return SemanticMatch(
            file_path=file_path,
            relevance_score=min(score, MAX_RELEVANCE_SCORE),
            matched_entities=matched,
            context_importance=context_importance(file_path),
            match_type=match_type,
        )


def filter_by_relevance(matches: List[SemanticMatch], threshold: float = 0.5) -> List[SemanticMatch]:
    """Keep matches scoring at least threshold."""
    return [match for match in matches if match.relevance_score >= threshold]


def group_matches_by_type(matches: List[SemanticMatch]) -> Dict[str, List[SemanticMatch]]:
    """Group matches by match type; every type has an entry."""
    groups: Dict[str, List[SemanticMatch]] = {match_type: [] for match_type in MatchType.ALL}
    for match in matches:
        groups[match.match_type].append(match)
    return groups


def calculate_match_statistics(matches: List[SemanticMatch]) -> MatchStatistics:
    """Aggregate count, relevance range and per-type counts."""
    if not matches:
        return MatchStatistics()

    relevances = [match.relevance_score for match in matches]
    by_type: Dict[str, int] = {}
    for match in matches:
        by_type[match.match_type] = by_type.get(match.match_type, 0) + 1

    return MatchStatistics(
        total_matches=len(matches),
        average_relevance=sum(relevances) / len(relevances),
        max_relevance=max(relevances),
        min_relevance=min(relevances),
        by_type=by_type,
    )
