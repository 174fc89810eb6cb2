"""Tests for aegis/similarity.py."""

import pytest

from aegis.similarity import similarity, tokenize


def test_tokenize_lowercases_and_splits_on_whitespace():
    assert tokenize("The  cat\tSAT\non the mat") == {"the", "cat", "sat", "on", "mat"}


def test_identical_word_sets_score_one():
    assert similarity("the cat sat", "SAT the   cat") == 1.0


def test_both_empty_score_one():
    assert similarity("", "   ") == 1.0


def test_disjoint_words_score_zero():
    assert similarity("apples and pears", "quantum chromodynamics") == 0.0


def test_one_empty_scores_zero():
    assert similarity("", "something") == 0.0


def test_partial_overlap_is_jaccard():
    # {a, b, c} vs {b, c, d}: 2 shared out of 4
    assert similarity("a b c", "b c d") == pytest.approx(0.5)


@pytest.mark.parametrize(
    ("text_a", "text_b"),
    [
        ("Paris is the capital of France.", "The capital of France is Paris"),
        ("4.", "The answer is 4."),
        ("", "non-empty"),
    ],
)
def test_similarity_is_symmetric_and_bounded(text_a, text_b):
    forward = similarity(text_a, text_b)
    assert forward == similarity(text_b, text_a)
    assert 0.0 <= forward <= 1.0


def test_punctuation_is_part_of_the_token():
    # "4." and "4" are different words
    assert similarity("4.", "4") == 0.0
