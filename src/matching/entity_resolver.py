"""
Entity Resolver

Matches a posting's free-text employer name against the company registry.

Strategy (containment is the whole fuzzy-matching strategy, no phonetic or
edit-distance matching):
1. Normalize the employer name; names shorter than 2 characters after
   normalization are too ambiguous and never match.
2. Exact normalized key lookup; first company registered under the key wins.
3. Containment scan: the first index key (insertion order) that is a
   substring of the query, or contains it, wins.

The scan is O(N) per unmatched query, which is acceptable for registries in
the low tens of thousands.
"""

from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from src.common.types import Company
from src.matching.name_normalizer import normalize


MIN_KEY_LENGTH = 2


class NameIndex:
    """Normalized name -> companies sharing that key, in registry order."""

    def __init__(self, companies: Iterable[Company] = ()):
        self._index: Dict[str, List[Company]] = {}
        self._size = 0
        for company in companies:
            self.add(company)

    def add(self, company: Company) -> None:
        key = normalize(company.name)
        self._index.setdefault(key, []).append(company)
        self._size += 1

    def get(self, key: str) -> Optional[List[Company]]:
        return self._index.get(key)

    def items(self) -> Iterator[Tuple[str, List[Company]]]:
        return iter(self._index.items())

    def __len__(self) -> int:
        """Number of distinct normalized keys."""
        return len(self._index)

    @property
    def company_count(self) -> int:
        return self._size


def resolve(employer_name: str, index: NameIndex) -> Optional[Company]:
    """
    Resolve an employer name to a registry company.

    Args:
        employer_name: Free-text employer name from a posting
        index: Normalized-name index of the registry

    Returns:
        The matched Company, or None when nothing matches

    Examples:
        >>> idx = NameIndex([Company(id="c1", name="ABC株式会社")])
        >>> resolve("ABC", idx).id
        'c1'
    """
    query = normalize(employer_name)
    if len(query) < MIN_KEY_LENGTH:
        return None

    exact = index.get(query)
    if exact:
        return exact[0]

    for key, companies in index.items():
        if len(key) < MIN_KEY_LENGTH:
            continue
        if key in query or query in key:
            return companies[0]

    return None
