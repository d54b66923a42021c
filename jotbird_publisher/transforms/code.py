"""Detection of code spans that rewriting passes must leave alone."""

import re
from dataclasses import dataclass
from typing import List, Tuple

# ``` or ~~~ fence (three or more), closed by the same fence on its own line
FENCED_PATTERN = re.compile(r'^(`{3,}|~{3,}).*\n[\s\S]*?\n\1\s*$', re.MULTILINE)

INLINE_PATTERN = re.compile(r'`[^`\n]+`')


@dataclass
class CodeRegions:
    """Half-open [start, end) offsets of fenced blocks and inline code spans."""

    spans: List[Tuple[int, int]]

    @classmethod
    def scan(cls, text: str) -> "CodeRegions":
        """Locate every fenced block and inline code span in text."""
        spans = [m.span() for m in FENCED_PATTERN.finditer(text)]
        spans.extend(m.span() for m in INLINE_PATTERN.finditer(text))
        return cls(spans)

    def contains(self, offset: int) -> bool:
        """Whether offset falls inside any detected code span."""
        return any(start <= offset < end for start, end in self.spans)

    def __len__(self) -> int:
        return len(self.spans)
