"""
Tolerant extraction of bilingual reply pairs from model output.

The model is asked for a numbered list with parenthesised translations but
sometimes answers with JSON or a looser layout. Parsers are tried in order
(strict JSON, numbered-list regex, line heuristic); each returns a list of
pairs or None for "no match". The first non-empty match wins.
"""

import json
import logging
import re
from typing import Any, Callable, List, NamedTuple, Optional, Sequence

from talkhint.config.constants import LOGGER_NAME
from talkhint.models.completion_schemas import BilingualPair

logger = logging.getLogger(LOGGER_NAME)

MAX_BILINGUAL_PAIRS = 3

NUMBERED_PAIR_RE = re.compile(r"(\d+)\.\s+([^\n]+)\s*\n\s*\(([^)]+)\)")
NUMBERED_LINE_RE = re.compile(r"^(\d+)\.\s+(.+)$")
CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

Parser = Callable[[str], Optional[List[BilingualPair]]]


class ParsedPairs(NamedTuple):
    """Outcome of the parser chain; ``parser`` is None when nothing matched."""
    pairs: List[BilingualPair]
    parser: Optional[str]

    @property
    def matched(self) -> bool:
        return self.parser is not None


def _pair_from_obj(obj: Any) -> Optional[BilingualPair]:
    if not isinstance(obj, dict):
        return None
    primary = obj.get("primary", obj.get("english"))
    secondary = obj.get("secondary", obj.get("russian"))
    if not isinstance(primary, str) or not isinstance(secondary, str):
        return None
    if not primary.strip() or not secondary.strip():
        return None
    return BilingualPair(primary=primary.strip(), secondary=secondary.strip())


def parse_json_pairs(content: str) -> Optional[List[BilingualPair]]:
    """A JSON array of pair objects, or an object holding one under ``responses``."""
    try:
        data = json.loads(CODE_FENCE_RE.sub("", content.strip()))
    except ValueError:
        return None
    if isinstance(data, dict):
        data = data.get("responses")
    if not isinstance(data, list):
        return None
    pairs = [p for p in (_pair_from_obj(item) for item in data) if p is not None]
    return pairs or None


def parse_numbered_pairs(content: str) -> Optional[List[BilingualPair]]:
    """``1. Reply`` followed on the next line by ``(Translation)``."""
    pairs = [
        BilingualPair(primary=m.group(2).strip(), secondary=m.group(3).strip())
        for m in NUMBERED_PAIR_RE.finditer(content)
    ]
    return pairs or None


def parse_line_pairs(content: str) -> Optional[List[BilingualPair]]:
    """Line-by-line fallback pairing numbered lines with the next parenthesised line."""
    pairs: List[BilingualPair] = []
    current_primary = ""
    for line in content.split("\n"):
        stripped = line.strip()
        number_match = NUMBERED_LINE_RE.match(stripped)
        if number_match:
            current_primary = number_match.group(2).strip()
            continue
        if current_primary and stripped.startswith("(") and stripped.endswith(")"):
            secondary = stripped[1:-1].strip()
            if secondary:
                pairs.append(BilingualPair(primary=current_primary, secondary=secondary))
            current_primary = ""
    return pairs or None


PARSER_CHAIN: Sequence[Parser] = (parse_json_pairs, parse_numbered_pairs, parse_line_pairs)


def extract_bilingual_pairs(content: str, parsers: Sequence[Parser] = PARSER_CHAIN) -> ParsedPairs:
    """Run the parser chain and cap the result at three pairs."""
    for parser in parsers:
        pairs = parser(content)
        if pairs:
            logger.debug(f"Bilingual pairs extracted by {parser.__name__}: {len(pairs)}")
            return ParsedPairs(pairs[:MAX_BILINGUAL_PAIRS], parser.__name__)
    return ParsedPairs([], None)
