def _lower(term: str) -> str:
    # one code point per character: "İ" lowers to "i", "Σ" to "σ" even at a word end
    return "".join(char.lower()[0] for char in term)


def searchify(terms: list[str]) -> list[str]:
    """Expand search terms into a lower-cased substring index.

    Each non-empty term contributes itself plus every contiguous substring of
    at least two characters that is shorter than the term. A term of length n
    yields O(n²) entries, so only short terms (names, tags) should be indexed.
    Duplicates are kept.

    Lower-casing maps every character to exactly one code point, so the
    index length depends only on the term length.

    Args:
        terms (list[str]): Raw terms as returned by Model.search_terms().

    Returns:
        list[str]: The index, queryable with "==" or "array-contains".
    """
    index: list[str] = []
    for term in terms:
        if not term:
            continue
        term = _lower(term)
        index.append(term)
        for length in range(2, len(term)):
            for start in range(len(term) - length + 1):
                index.append(term[start:start + length])
    return index
