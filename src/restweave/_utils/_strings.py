"""String helpers for URL encoding and property name matching.

All helpers are pure functions over immutable strings.
"""

import re
from typing import Iterator
from urllib.parse import quote, unquote_plus

_IS_UPPER_CASE = re.compile(r"^[A-Z]+$")

_SEPARATORS_UNDERSCORE = re.compile(r"[-\s]")
_SEPARATORS_DASH = re.compile(r"[\s]")
_SEPARATORS_SPACE = re.compile(r"[-\s]")
_LOWER_THEN_UPPER = re.compile(r"([a-z\d])([A-Z])")
_ACRONYM_THEN_WORD = re.compile(r"([A-Z]+)([A-Z][a-z])")


def url_encode(value: str) -> str:
    """Percent-encode everything except RFC 3986 unreserved characters.

    Examples:
        >>> url_encode("a b/c")
        'a%20b%2Fc'
    """
    return quote(value, safe="")


def url_decode(value: str) -> str:
    return unquote_plus(value)


def _split_words(word: str, separators: re.Pattern[str], joiner: str) -> str:
    word = _ACRONYM_THEN_WORD.sub(rf"\1{joiner}\2", word)
    word = _LOWER_THEN_UPPER.sub(rf"\1{joiner}\2", word)
    return separators.sub(joiner, word)


def add_underscores(word: str) -> str:
    """Convert `FirstName`, `first-name` or `first name` to `First_Name` style."""
    return _split_words(word, _SEPARATORS_UNDERSCORE, "_")


def add_dashes(word: str) -> str:
    return _split_words(word, _SEPARATORS_DASH, "-")


def add_spaces(word: str) -> str:
    return _split_words(word, _SEPARATORS_SPACE, " ")


def add_underscore_prefix(word: str) -> str:
    return f"_{word}"


def remove_underscores_and_dashes(word: str) -> str:
    return word.replace("_", "").replace("-", "")


def is_upper_case(word: str) -> bool:
    return _IS_UPPER_CASE.match(word) is not None


def to_pascal_case(text: str, remove_underscores: bool = True) -> str:
    """Convert underscore or space separated words to PascalCase.

    Words written entirely in upper case after the first letter are lowered,
    so `FIRST_NAME` becomes `FirstName`.
    """
    if not text:
        return text

    join_string = "" if remove_underscores else "_"
    words = text.replace("_", " ").split(" ")

    def case_word(word: str) -> str:
        rest_of_word = word[1:]
        if is_upper_case(rest_of_word):
            rest_of_word = rest_of_word.lower()
        return word[0].upper() + rest_of_word

    return join_string.join(case_word(word) for word in words if word)


def to_camel_case(text: str) -> str:
    pascal = to_pascal_case(text)
    return pascal[:1].lower() + pascal[1:]


def get_name_variants(name: str) -> Iterator[str]:
    """Lazily yield the candidate spellings of a property name.

    The order is significant: callers take the first candidate that matches.
    """
    if not name:
        return

    yield name
    yield to_camel_case(name)
    yield name.lower()
    yield add_underscores(name)
    yield add_underscores(name).lower()
    yield add_dashes(name)
    yield add_dashes(name).lower()
    yield add_underscore_prefix(name)
    yield to_camel_case(add_underscores(name))
    yield add_underscore_prefix(to_camel_case(name))
    yield add_underscore_prefix(to_camel_case(add_underscores(name)))
    yield add_spaces(name)
    yield add_spaces(name).lower()
