"""Title-casing rules for user-entered beer names, brands and movie titles.

Standardized names collapse spacing variants ("sierra  nevada" vs
"Sierra Nevada") so the same item groups together in suggestions.
"""

from __future__ import annotations

from collections.abc import Collection

MOVIE_SMALL_WORDS = frozenset(
    {"a", "an", "the", "and", "but", "or", "for", "nor", "on", "at", "to", "from", "by", "with", "in", "of"}
)
BEER_SMALL_WORDS = frozenset({"and", "or", "with", "on", "the", "a", "an", "in", "by", "for"})
BRAND_SMALL_WORDS = frozenset({"and", "of", "the"})

# Style abbreviations kept fully upper-case ("hazy neipa" -> "Hazy NEIPA").
BEER_ACRONYMS = frozenset({"ipa", "dipa", "neipa", "xpa", "aipa", "ipl"})


def _title_case(
    text: str,
    small_words: Collection[str],
    acronyms: Collection[str] = (),
) -> str:
    words = []
    for index, raw in enumerate(text.split()):
        word = raw.lower()
        if word in acronyms:
            words.append(word.upper())
        elif index == 0 or word not in small_words:
            words.append(word[:1].upper() + word[1:])
        else:
            words.append(word)
    return " ".join(words)


def standardize_movie_title(title: str) -> str:
    return _title_case(title, MOVIE_SMALL_WORDS)


def standardize_beer_name(name: str) -> str:
    return _title_case(name, BEER_SMALL_WORDS, BEER_ACRONYMS)


def standardize_brand(brand: str) -> str:
    return _title_case(brand, BRAND_SMALL_WORDS)
