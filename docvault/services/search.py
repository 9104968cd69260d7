"""Search: structured `field<op>value` queries and tiered full-text ranking.

Full-text tiers (lower is stronger):

1. exact display name, `name`, `title`, or heading
2. substring of a string metadata value
3. substring of the path
4. substring of the content
5. some query word of 3+ characters found in metadata or content
6. only shorter query words found
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Literal, Mapping

from ..document.document import collection_of, display_name, document_id, extract_title
from ..models import CollectionSchema, DocumentRecord
from ..repository.filters import exclude_templates
from ..repository.repository import Repository

Operator = Literal[":", "=", "!=", ">", "<", ">=", "<=", "contains"]

# Longest operators first so ">=" is not read as ">"
_OPERATORS: tuple[Operator, ...] = ("!=", ">=", "<=", ":", "=", ">", "<")
_NUMBER = re.compile(r"^-?\d+(\.\d+)?$")


@dataclass
class SearchMatch:
    field: str
    context: str
    line: int | None = None


@dataclass
class SearchResult:
    record: DocumentRecord
    tier: int
    matches: list[SearchMatch] = field(default_factory=list)
    match_count: int = 0

    @property
    def score(self) -> float:
        return 1 / self.tier


@dataclass
class TopResult:
    result: SearchResult | None
    ambiguous: list[SearchResult] = field(default_factory=list)


@dataclass(frozen=True)
class QueryExpression:
    field: str | None
    op: Operator
    value: str


# --- query parsing -------------------------------------------------------------


def _split_tokens(query: str) -> list[str]:
    """Whitespace split that keeps quoted runs together."""
    tokens = []
    i = 0
    while i < len(query):
        while i < len(query) and query[i].isspace():
            i += 1
        if i >= len(query):
            break
        if query[i] in "\"'":
            quote = query[i]
            end = query.find(quote, i + 1)
            end = len(query) if end == -1 else end
            tokens.append(query[i + 1 : end])
            i = end + 1
            continue
        start = i
        while i < len(query) and not query[i].isspace():
            i += 1
        tokens.append(query[start:i])
    return tokens


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def parse_expression(token: str) -> QueryExpression:
    for op in _OPERATORS:
        idx = token.find(op)
        if idx > 0:
            return QueryExpression(token[:idx], op, _strip_quotes(token[idx + len(op) :]))
    return QueryExpression(None, "contains", _strip_quotes(token))


def parse_query(query: str) -> list[QueryExpression]:
    return [parse_expression(t) for t in _split_tokens(query)]


# --- structured evaluation ---------------------------------------------------------


def _typed(value: str) -> Any:
    if _NUMBER.match(value):
        return float(value) if "." in value else int(value)
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    return value


def _comparable(value: Any) -> float | str | None:
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return value.lower()
    return None


def _equals(left: Any, right: Any) -> bool:
    if isinstance(left, list):
        return any(_equals(item, right) for item in left)
    if isinstance(left, (int, float)) and not isinstance(left, bool) and isinstance(right, (int, float)):
        return left == right
    left_text = str(left).lower()
    right_text = str(right).lower()
    if left_text == right_text:
        return True
    if "," in left_text:
        return right_text in (p.strip() for p in left_text.split(","))
    return False


def _compare(left: Any, right: Any, op: Operator) -> bool:
    if left is None:
        return False
    if op in (":", "="):
        return _equals(left, right)
    if op == "!=":
        return not _equals(left, right)
    a, b = _comparable(left), _comparable(right)
    if a is None or b is None or isinstance(a, str) != isinstance(b, str):
        return False
    if op == ">":
        return a > b
    if op == "<":
        return a < b
    if op == ">=":
        return a >= b
    return a <= b


def _field_value(record: DocumentRecord, name: str) -> Any:
    if name == "collection":
        return collection_of(record.path)
    return record.document.metadata.get(name)


def evaluate(record: DocumentRecord, expr: QueryExpression, matches: list[SearchMatch]) -> bool:
    if expr.field is None:
        needle = expr.value.lower()
        doc = record.document
        haystacks = (
            doc.content,
            extract_title(doc.content),
            str(doc.metadata.get("title", "")),
            str(doc.metadata.get("name", "")),
        )
        if any(needle in h.lower() for h in haystacks):
            matches.append(SearchMatch("content", expr.value))
            return True
        return False

    value = _field_value(record, expr.field)
    if _compare(value, _typed(expr.value), expr.op):
        matches.append(SearchMatch(expr.field, str(value)))
        return True
    return False


def matches_query(record: DocumentRecord, query: str) -> bool:
    return all(evaluate(record, expr, []) for expr in parse_query(query))


# --- service ---------------------------------------------------------------------------


def _sort(results: list[SearchResult]) -> list[SearchResult]:
    # tier ascending, match count descending, then newest id first
    results.sort(key=lambda r: document_id(r.record.document), reverse=True)
    results.sort(key=lambda r: (r.tier, -r.match_count))
    return results


class SearchService:
    def __init__(self, repository: Repository, schemas: Mapping[str, CollectionSchema] | None = None):
        self.repository = repository
        self.schemas = schemas or {}

    def search(self, query: str) -> list[SearchResult]:
        """Structured search when any term names a field, else full text."""
        expressions = parse_query(query)
        if any(e.field is not None for e in expressions):
            return self.query_search(expressions)
        return self.full_text_search(query)

    def query_search(self, query: str | list[QueryExpression]) -> list[SearchResult]:
        expressions = parse_query(query) if isinstance(query, str) else query
        results = []
        for record in self.repository.collect_all(exclude_templates()):
            matches: list[SearchMatch] = []
            if all(evaluate(record, expr, matches) for expr in expressions):
                results.append(SearchResult(record, 1, matches, len(matches)))
        return _sort(results)

    def full_text_search(self, query: str) -> list[SearchResult]:
        needle = query.strip().lower()
        if not needle:
            return []
        words = needle.split()
        results = []
        for record in self.repository.collect_all(exclude_templates()):
            result = self._score(record, needle, words)
            if result is not None:
                results.append(result)
        return _sort(results)

    def _score(self, record: DocumentRecord, needle: str, words: list[str]) -> SearchResult | None:
        doc = record.document
        schema = self.schemas.get(collection_of(record.path))
        names = {
            "name": str(doc.metadata.get("name", "")),
            "_title": extract_title(doc.content),
            "title": str(doc.metadata.get("title", "")),
            "display_name": display_name(doc, schema),
        }
        for name, value in names.items():
            if value and value.lower() == needle:
                return SearchResult(record, 1, [SearchMatch(name, needle)], 1)

        strings = [(k, v.lower()) for k, v in doc.metadata.items() if isinstance(v, str)]
        matches = [SearchMatch(k, needle) for k, v in strings if needle in v]
        if matches:
            return SearchResult(record, 2, matches, len(matches))

        if needle in record.path.lower():
            return SearchResult(record, 3, [SearchMatch("path", needle)], 1)

        content = doc.content.lower()
        if needle in content:
            matches = [
                SearchMatch("content", line, number)
                for number, line in enumerate(doc.content.split("\n"), start=1)
                if needle in line.lower()
            ]
            return SearchResult(record, 4, matches, len(matches))

        long_hits = short_hits = 0
        for word in words:
            if any(word in v for _, v in strings) or word in content:
                if len(word) >= 3:
                    long_hits += 1
                else:
                    short_hits += 1
        if long_hits:
            return SearchResult(record, 5, [SearchMatch("content", " ".join(words))], long_hits)
        if short_hits:
            return SearchResult(record, 6, [SearchMatch("content", " ".join(words))], short_hits)
        return None

    def get_top_result(self, query: str) -> TopResult:
        """The single best result, or None with the tied group when the
        best tier is shared."""
        results = self.search(query)
        if not results:
            return TopResult(None)
        if len(results) == 1 or results[0].tier < results[1].tier:
            return TopResult(results[0])
        top_tier = results[0].tier
        return TopResult(None, [r for r in results if r.tier == top_tier])
