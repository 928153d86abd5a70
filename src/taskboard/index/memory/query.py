"""Query-string parsing and matching for the in-memory index.

Supports a small subset of the Lucene query-string syntax:

    ship                  term, matched against every field
    "ship it"             phrase (consecutive terms)
    user:alice            term restricted to one field
    user:*                field has a non-null value
    sh*                   prefix
    *                     every document
    +ship  -draft         required / excluded clause
    ship AND alice        both required
    ship OR deploy        either (the default between clauses)
    NOT draft             excluded clause

Clauses without ``+``/``-``/``AND``/``NOT`` are optional: a document matches
when it satisfies every required clause, no excluded clause, and, if there
are no required clauses, at least one optional clause. Documents are scored
by the number of required and optional clauses they satisfy.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Literal

from taskboard.index.base.exceptions import QuerySyntaxError

Occur = Literal["should", "must", "must_not"]

_WORD = re.compile(r"\w+")
_CLAUSE = re.compile(
    r"""
    \s*
    (?P<modifier>[+-])?
    (?:(?P<field>[A-Za-z_][\w.]*):(?=[^\s]))?
    (?:"(?P<phrase>[^"]*)"|(?P<term>[^\s"]+))
    """,
    re.VERBOSE,
)
_OPERATORS = {"AND", "OR", "NOT"}


@dataclass
class Clause:
    occur: Occur
    terms: tuple[str, ...] = ()
    field: str | None = None
    prefix: bool = False
    match_all: bool = False
    exists: bool = False


def analyze(text: str) -> list[str]:
    """Split text into lowercase word tokens."""
    return [t.lower() for t in _WORD.findall(text)]


def analyze_document(document: dict[str, Any], parent: str = "") -> dict[str, list[str]]:
    """Tokenize every scalar field of a document, flattening nested keys with dots."""
    fields: dict[str, list[str]] = {}
    for key, value in document.items():
        name = f"{parent}{key}"
        if value is None:
            continue
        if isinstance(value, dict):
            fields.update(analyze_document(value, parent=f"{name}."))
        elif isinstance(value, (list, tuple)):
            fields[name] = [t for item in value if item is not None for t in analyze(str(item))]
        else:
            fields[name] = analyze(str(value))
    return fields


def parse_query(query: str) -> list[Clause]:
    """Parse a query string into clauses.

    Raises:
        QuerySyntaxError: On unbalanced quotes, dangling operators, or a
            query with nothing searchable in it.
    """
    clauses: list[Clause] = []
    pending: str | None = None
    pos = 0

    while query[pos:].strip():
        match = _CLAUSE.match(query, pos)
        if match is None:
            quote_at = query.find('"', pos)
            raise QuerySyntaxError(f"Unbalanced quote at position {quote_at}")
        pos = match.end()

        modifier, field = match.group("modifier"), match.group("field")
        phrase, term = match.group("phrase"), match.group("term")

        if term in _OPERATORS and not modifier and not field:
            if pending is not None:
                raise QuerySyntaxError(f"Unexpected '{term}' after '{pending}'")
            if term != "NOT" and not clauses:
                raise QuerySyntaxError(f"'{term}' must follow a search term")
            pending = term
            continue

        if term is not None and term.endswith(":"):
            raise QuerySyntaxError(f"Missing value for field '{term[:-1]}'")

        occur: Occur = "should"
        if modifier == "+":
            occur = "must"
        elif modifier == "-":
            occur = "must_not"

        if pending == "NOT":
            occur = "must_not"
        elif pending == "AND":
            occur = "must" if occur == "should" else occur
            if clauses[-1].occur == "should":
                clauses[-1].occur = "must"
        pending = None

        clause = _build_clause(occur, field, phrase, term)
        if clause is not None:
            clauses.append(clause)

    if pending is not None:
        raise QuerySyntaxError(f"Query ends with dangling '{pending}'")
    if not clauses:
        raise QuerySyntaxError("Query has no searchable terms")
    return clauses


def _build_clause(occur: Occur, field: str | None, phrase: str | None, term: str | None) -> Clause | None:
    if phrase is not None:
        terms = analyze(phrase)
        return Clause(occur=occur, terms=tuple(terms), field=field) if terms else None

    assert term is not None
    if term == "*":
        if field is None:
            return Clause(occur=occur, match_all=True)
        return Clause(occur=occur, field=field, exists=True)

    prefix = term.endswith("*")
    terms = analyze(term.rstrip("*"))
    if not terms:
        return None
    return Clause(occur=occur, terms=tuple(terms), field=field, prefix=prefix)


def clause_matches(clause: Clause, fields: dict[str, list[str]]) -> bool:
    """Return whether an analyzed document satisfies one clause."""
    if clause.match_all:
        return True
    if clause.exists:
        return clause.field in fields
    if clause.field is not None:
        targets = [fields.get(clause.field, [])]
    else:
        targets = [tokens for name, tokens in fields.items() if name != "id"]
    return any(_contains(tokens, clause.terms, clause.prefix) for tokens in targets)


def score(clauses: list[Clause], fields: dict[str, list[str]]) -> int | None:
    """Score a document against parsed clauses; ``None`` means no match."""
    has_must = False
    matched_should = 0
    total = 0
    for clause in clauses:
        hit = clause_matches(clause, fields)
        if clause.occur == "must_not":
            if hit:
                return None
        elif clause.occur == "must":
            has_must = True
            if not hit:
                return None
            total += 1
        elif hit:
            matched_should += 1
            total += 1

    has_should = any(c.occur == "should" for c in clauses)
    if has_should and not has_must and matched_should == 0:
        return None
    return total


def _contains(tokens: list[str], terms: tuple[str, ...], prefix: bool) -> bool:
    n = len(terms)
    head, last = list(terms[:-1]), terms[-1]
    for i in range(len(tokens) - n + 1):
        if tokens[i : i + n - 1] != head:
            continue
        candidate = tokens[i + n - 1]
        if candidate == last or (prefix and candidate.startswith(last)):
            return True
    return False
