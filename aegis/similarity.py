"""Lexical similarity between backend responses."""


def tokenize(text: str) -> frozenset[str]:
    """Lower-case and split on whitespace into a set of words."""
    return frozenset(text.lower().split())


def similarity(text_a: str, text_b: str) -> float:
    """Jaccard word overlap |A∩B| / |A∪B|, in [0, 1].

    Two texts with no words at all are identical, so the empty union scores 1.
    """
    words_a = tokenize(text_a)
    words_b = tokenize(text_b)
    union = words_a | words_b
    if not union:
        return 1.0
    return len(words_a & words_b) / len(union)
