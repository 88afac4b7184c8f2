"""
Keyword filtering for comment text.

The keyword box accepts a tiny boolean language that is parsed and
interpreted here, never handed to eval():

    great, awesome              comma means OR between clauses
    tutorial OR guide           OR inside a clause
    tutorial AND beginner       AND binds tighter than OR
    review AND NOT sponsored    NOT negates a single term

Operators are case-insensitive and every term is a case-insensitive substring
test. Parentheses are not operators; they are matched literally. An operator
with nothing on one side ("spam OR ", "tutorial AND ") leaves an empty term,
which every text contains.
"""

import re
from typing import List, NamedTuple

OR_SPLIT = re.compile(r'\s+or\s+', re.IGNORECASE)
AND_SPLIT = re.compile(r'\s+and\s+', re.IGNORECASE)
NOT_PREFIX = re.compile(r'^not\s+(.+)$', re.IGNORECASE | re.DOTALL)
FALLBACK_SPLIT = re.compile(r'[,\s]+')


class KeywordExpressionError(ValueError):
    """Raised when an expression cannot be parsed."""


class Term(NamedTuple):
    text: str
    negated: bool = False


# A clause is an OR of AND-groups of terms
Clause = List[List[Term]]


def parse_term(part: str) -> Term:
    part = part.strip()
    not_match = NOT_PREFIX.match(part)
    if not_match:
        return Term(not_match.group(1).strip().lower(), True)
    return Term(part.lower())


def parse_clause(expression: str) -> Clause:
    """
    Parse one clause (no top-level commas) into OR-groups of AND-ed terms.

    Operators are split before any trimming so a leading or trailing operator
    still counts as one.

    Raises:
        KeywordExpressionError: If the clause holds no search term at all, e.g. " AND "
    """
    clause = [
        [parse_term(and_part) for and_part in AND_SPLIT.split(or_part)]
        for or_part in OR_SPLIT.split(expression)
    ]
    if not any(term.text for and_group in clause for term in and_group):
        raise KeywordExpressionError(f"no search terms in {expression!r}")
    return clause


def evaluate_clause(text: str, clause: Clause) -> bool:
    """Evaluate a parsed clause against already lowercased text."""
    return any(
        all((term.text in text) != term.negated for term in and_group)
        for and_group in clause
    )


def fallback_match(text: str, keywords: str) -> bool:
    """Plain OR over every comma/whitespace separated term."""
    terms = [t for t in FALLBACK_SPLIT.split(str(keywords).lower()) if t]
    return any(term in text.lower() for term in terms)


def matches_keywords(text: str, keywords: str) -> bool:
    """
    Check whether comment text satisfies a keyword expression.

    Parameters:
        text: Comment text
        keywords: Keyword expression; empty or None matches everything

    Returns:
        Whether the text matches. Never raises.
    """
    if not keywords or not keywords.strip():
        return True

    lower_text = (text or "").lower()

    try:
        comma_parts = [p for p in keywords.split(',') if p.strip()]
        if len(comma_parts) > 1:
            clauses = [parse_clause(part) for part in comma_parts]
        else:
            clauses = [parse_clause(keywords)]
        return any(evaluate_clause(lower_text, clause) for clause in clauses)
    except KeywordExpressionError:
        return fallback_match(lower_text, keywords)
