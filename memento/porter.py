"""Porter stemming for lowercase English words."""

from __future__ import annotations

_VOWELS = frozenset("aeiou")


def _is_vowel_at(word: str, i: int) -> bool:
    c = word[i]
    if c in _VOWELS:
        return True
    return c == "y" and i > 0 and not _is_vowel_at(word, i - 1)


def _measure(stem: str) -> int:
    """Number of vowel-consonant sequences in ``stem``."""
    m = 0
    in_vowel = False
    for i in range(len(stem)):
        if _is_vowel_at(stem, i):
            in_vowel = True
        elif in_vowel:
            m += 1
            in_vowel = False
    return m


def _contains_vowel(stem: str) -> bool:
    return any(_is_vowel_at(stem, i) for i in range(len(stem)))


def _ends_double_consonant(word: str) -> bool:
    if len(word) < 2:
        return False
    return word[-1] == word[-2] and not _is_vowel_at(word, len(word) - 1)


def _ends_cvc(word: str) -> bool:
    n = len(word)
    if n < 3 or word[-1] in "wxy":
        return False
    return (
        not _is_vowel_at(word, n - 1)
        and _is_vowel_at(word, n - 2)
        and not _is_vowel_at(word, n - 3)
    )


def _strip(word: str, suffix: str) -> str | None:
    """Return ``word`` without ``suffix``, or None if it does not end with it."""
    if word.endswith(suffix):
        return word[: len(word) - len(suffix)]
    return None


def _step1a(word: str) -> str:
    if (stem := _strip(word, "sses")) is not None:
        return stem + "ss"
    if (stem := _strip(word, "ies")) is not None:
        return stem + "i"
    if word.endswith("ss"):
        return word
    if (stem := _strip(word, "s")) is not None:
        return stem
    return word


def _step1b(word: str) -> str:
    if (stem := _strip(word, "eed")) is not None:
        return stem + "ee" if _measure(stem) > 0 else word

    stem = _strip(word, "ed")
    if stem is None:
        stem = _strip(word, "ing")
    if stem is None or not _contains_vowel(stem):
        return word

    rest = stem
    if rest.endswith(("at", "bl", "iz")):
        return rest + "e"
    if _ends_double_consonant(rest) and rest[-1] not in "lsz":
        return rest[:-1]
    if _measure(rest) == 1 and _ends_cvc(rest):
        return rest + "e"
    return rest


def _step1c(word: str) -> str:
    stem = _strip(word, "y")
    if stem is not None and _contains_vowel(stem):
        return stem + "i"
    return word


_STEP2_RULES = (
    ("ational", "ate"), ("tional", "tion"), ("enci", "ence"),
    ("anci", "ance"), ("izer", "ize"), ("abli", "able"),
    ("alli", "al"), ("entli", "ent"), ("eli", "e"),
    ("ousli", "ous"), ("ization", "ize"), ("ation", "ate"),
    ("ator", "ate"), ("alism", "al"), ("iveness", "ive"),
    ("fulness", "ful"), ("ousness", "ous"), ("aliti", "al"),
    ("iviti", "ive"), ("biliti", "ble"),
)

_STEP3_RULES = (
    ("icate", "ic"), ("ative", ""), ("alize", "al"),
    ("iciti", "ic"), ("ical", "ic"), ("ful", ""),
    ("ness", ""),
)

_STEP4_SUFFIXES = (
    "ement", "ment", "ance", "ence", "able", "ible",
    "ism", "ate", "iti", "ous", "ive", "ize",
    "al", "er", "ic", "ion",
)


def _apply_rules(word: str, rules: tuple[tuple[str, str], ...]) -> str:
    for suffix, replacement in rules:
        stem = _strip(word, suffix)
        if stem is not None:
            return stem + replacement if _measure(stem) > 0 else word
    return word


def _step4(word: str) -> str:
    for suffix in _STEP4_SUFFIXES:
        stem = _strip(word, suffix)
        if stem is None:
            continue
        if suffix == "ion":
            if _measure(stem) > 1 and stem and stem[-1] in "st":
                return stem
            return word
        return stem if _measure(stem) > 1 else word
    return word


def _step5(word: str) -> str:
    stem = _strip(word, "e")
    if stem is not None:
        m = _measure(stem)
        if m > 1 or (m == 1 and not _ends_cvc(stem)):
            word = stem
    if _ends_double_consonant(word) and word[-1] == "l" and _measure(word) > 1:
        word = word[:-1]
    return word


def porter_stem(word: str) -> str:
    """Apply Porter stemming to a lowercase word.

    Words of at most two bytes (UTF-8) are returned unchanged.
    """
    if len(word.encode("utf-8")) <= 2:
        return word
    word = _step1a(word)
    word = _step1b(word)
    word = _step1c(word)
    word = _apply_rules(word, _STEP2_RULES)
    word = _apply_rules(word, _STEP3_RULES)
    word = _step4(word)
    return _step5(word)