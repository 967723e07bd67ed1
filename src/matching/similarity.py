# src/matching/similarity.py

"""Levenshtein-based similarity between product names."""


def levenshtein_distance(first: str, second: str) -> int:
    """Return the edit distance between two strings.

    Insertions, deletions and substitutions each cost 1.
    """
    if len(first) < len(second):
        first, second = second, first

    previous = list(range(len(second) + 1))
    for i, char_a in enumerate(first, start=1):
        current = [i]
        for j, char_b in enumerate(second, start=1):
            if char_a == char_b:
                current.append(previous[j - 1])
            else:
                current.append(
                    min(
                        previous[j - 1] + 1,  # substitution
                        current[j - 1] + 1,   # insertion
                        previous[j] + 1,      # deletion
                    )
                )
        previous = current

    return previous[len(second)]


def calculate_similarity(first: str, second: str) -> float:
    """Score two names in ``[0, 1]``; 1.0 means identical (case-insensitive).

    Computed as ``(len(longer) - distance) / len(longer)``.  Two empty
    strings score 1.0.
    """
    a = first.lower()
    b = second.lower()
    longer = max(len(a), len(b))
    if longer == 0:
        return 1.0
    return (longer - levenshtein_distance(a, b)) / longer
