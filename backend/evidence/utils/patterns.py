"""
Declarative ordered pattern tables.

Extractors describe their heuristics as ordered lists of PatternSpec and
evaluate them with first_match(), so precedence lives in list order and
each rule can be tested on its own.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, Sequence, TypeVar

T = TypeVar('T')


@dataclass(frozen=True)
class PatternSpec:
    """A named regex pattern with example and notes for documentation."""
    name: str
    pattern: str
    example: str
    notes: Optional[str] = None
    value: Any = None  # Fixed result for lookup tables (brands, payment methods)
    flags: int = re.IGNORECASE
    compiled: re.Pattern = field(default=None, init=False, compare=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, 'compiled', re.compile(self.pattern, self.flags))

    def search(self, text: str) -> Optional[re.Match]:
        return self.compiled.search(text)

    def finditer(self, text: str) -> Iterable[re.Match]:
        return self.compiled.finditer(text)


def first_match(
    specs: Sequence[PatternSpec],
    texts: Sequence[str],
    handler: Callable[[PatternSpec, re.Match], Optional[T]],
) -> Optional[T]:
    """
    Fold over specs in order and return the first non-None handler result.

    For each spec every match in every text is offered to the handler; a
    None result means "matched but rejected" and the search continues.
    """
    for spec in specs:
        for text in texts:
            if not text:
                continue
            for match in spec.finditer(text):
                result = handler(spec, match)
                if result is not None:
                    return result
    return None
