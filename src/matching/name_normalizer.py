"""
Company Name Normalizer

Canonicalizes a free-text company name into a comparable key:
- removes legal-entity-form markers (株式会社, 有限会社, 合同会社, ...)
- removes all whitespace, including the full-width space
- converts full-width parentheses and alphanumerics to half-width
- lowercases

Purely structural: no stemming, no transliteration. normalize() is total
and idempotent.
"""

import re


# Longest forms first so "(株)" is not left behind as "()"
LEGAL_ENTITY_FORMS = (
    "株式会社",
    "有限会社",
    "合同会社",
    "合資会社",
    "合名会社",
    "(株)",
    "(有)",
    "(同)",
    "㈱",
    "㈲",
)

_WHITESPACE = re.compile(r"\s+")

# Full-width A-Z, a-z, 0-9 -> ASCII
_FULLWIDTH_ALNUM = {
    code: code - 0xFEE0
    for start, end in ((0xFF21, 0xFF3A), (0xFF41, 0xFF5A), (0xFF10, 0xFF19))
    for code in range(start, end + 1)
}
_FULLWIDTH_PARENS = {ord("（"): "(", ord("）"): ")"}
_TRANSLATION = {**_FULLWIDTH_ALNUM, **_FULLWIDTH_PARENS}


def normalize(name: str) -> str:
    """
    Normalize a company name for matching.

    Args:
        name: Free-text company name (None/empty tolerated)

    Returns:
        Comparable key, possibly empty

    Examples:
        >>> normalize("ABC株式会社")
        'abc'
        >>> normalize("株式会社　ＡＢＣ（東京）")
        'abc(東京)'
    """
    if not name:
        return ""

    # Width folding first so full-width "（株）" is caught as "(株)"
    text = name.translate(_TRANSLATION)
    text = _WHITESPACE.sub("", text)

    # Repeat until stable: removing one form can expose another ("株式株式会社会社")
    previous = None
    while previous != text:
        previous = text
        for form in LEGAL_ENTITY_FORMS:
            text = text.replace(form, "")
    return text.strip().lower()
