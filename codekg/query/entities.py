"""
Pattern Entity Extractor
========================

Default EntityExtractor: regex heuristics over identifier shapes.

- CamelCase tokens (AuthService) -> class names
- lowerCamel / snake_case tokens and words followed by "(" -> method names
- dotted lowercase tokens (com.acme.auth) -> package names
- Class.method tokens split into both
- remaining non-stopword words of 3+ chars -> free terms
"""

import re
from typing import List

from codekg.interfaces import ExtractedTerms

_TOKEN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*(?:\(\))?")
_CLASS = re.compile(r"^[A-Z][a-z0-9]+(?:[A-Z][A-Za-z0-9]*)+$")
_LOWER_CAMEL = re.compile(r"^[a-z]+[A-Z][A-Za-z0-9]*$")
_SNAKE = re.compile(r"^[a-z]+(?:_[a-z0-9]+)+$")
_PACKAGE = re.compile(r"^[a-z][a-z0-9_]*(?:\.[a-z][a-z0-9_]*)+$")

STOPWORDS = frozenset("""
a an and are as at be by can code did do does for from get has have how i if in
into is it its me my of on or our show tell that the their them then there these
this to use used uses using was what when where which who why will with work
works you your implemented implementation method methods class classes function
""".split())


class PatternEntityExtractor:
    """
    Heuristic extractor, no external calls.

    Example:
        >>> PatternEntityExtractor().extract("How does AuthService.login() validate credentials?").to_dict()
        {'classes': ['AuthService'], 'methods': ['login'], 'packages': [], 'terms': ['validate', 'credentials']}
    """

    def __init__(self, min_term_length: int = 3):
        self.min_term_length = min_term_length

    def extract(self, query: str) -> ExtractedTerms:
        terms = ExtractedTerms()
        for raw in _TOKEN.findall(query or ""):
            is_call = raw.endswith("()")
            token = raw[:-2] if is_call else raw

            if "." in token:
                if _PACKAGE.match(token):
                    _add(terms.package_names, token)
                    continue
                owner, _, member = token.rpartition(".")
                if _CLASS.match(owner.split(".")[-1]):
                    _add(terms.class_names, owner.split(".")[-1])
                _add(terms.method_names, member)
                continue

            if is_call or _LOWER_CAMEL.match(token) or _SNAKE.match(token):
                _add(terms.method_names, token)
            elif _CLASS.match(token):
                _add(terms.class_names, token)
            elif token.lower() not in STOPWORDS and len(token) >= self.min_term_length:
                _add(terms.free_terms, token.lower())
        return terms


def _add(bucket: List[str], value: str) -> None:
    if value not in bucket:
        bucket.append(value)
