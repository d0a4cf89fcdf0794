import pytest

from memento.porter import porter_stem


def test_enchanting_and_enchanter_share_a_stem():
    assert porter_stem("enchanting") == porter_stem("enchanter")


def test_enchant_family_stems_to_enchant():
    assert porter_stem("enchanter") == "enchant"
    assert porter_stem("enchantment") == "enchant"
    assert porter_stem("enchanting") == "enchant"


@pytest.mark.parametrize("word", ["a", "is", "it", "mz"])
def test_short_words_unchanged(word):
    assert porter_stem(word) == word


@pytest.mark.parametrize(
    "word, expected",
    [
        ("caresses", "caress"),
        ("ponies", "poni"),
        ("cats", "cat"),
        ("feed", "feed"),
        ("agreed", "agre"),
        ("hopping", "hop"),
        ("motoring", "motor"),
        ("filing", "file"),
        ("happy", "happi"),
        ("relational", "relat"),
    ],
)
def test_classic_examples(word, expected):
    assert porter_stem(word) == expected


def test_plural_and_singular_match():
    assert porter_stem("enchanters") == porter_stem("enchanter")


def test_empty_string():
    assert porter_stem("") == ""