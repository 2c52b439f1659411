"""Human-readable cluster labels."""

from __future__ import annotations

import re
from typing import Iterable, Optional, Sequence

from ...models.domain import Cluster

NEARBY_FALLBACK = "Nearby orders"
NO_COORDS_FALLBACK = "Orders without location"
MAX_LABEL_LENGTH = 40
GLOBAL_BAN_WORDS = frozenset({"bhutan"})

_NUMERICISH = re.compile(r"^[0-9\s-]+$")
_PLUS_CODEISH = re.compile(r"^[A-Z0-9+ ]+$")


def is_numericish(token: str) -> bool:
    return bool(_NUMERICISH.match(token))


def is_plus_codeish(token: str) -> bool:
    return "+" in token and bool(_PLUS_CODEISH.match(token))


def place_tokens(address: str, ban_words: Iterable[str] = ()) -> list[str]:
    """Comma tokens of the first address line that could name a place."""
    banned = GLOBAL_BAN_WORDS | {word.strip().lower() for word in ban_words if word}
    first_line = (address or "").split("\n")[0]
    tokens = []
    for part in first_line.split(","):
        token = part.strip()
        if not token or is_numericish(token) or is_plus_codeish(token):
            continue
        if token.lower() in banned:
            continue
        tokens.append(token)
    return tokens


def _truncate(label: str) -> str:
    if len(label) > MAX_LABEL_LENGTH:
        return label[: MAX_LABEL_LENGTH - 3] + "..."
    return label


def label_for(cluster: Cluster, ban_words: Iterable[str] = ()) -> str:
    """Base label from the first member's address, preferring the locality token."""
    fallback = NO_COORDS_FALLBACK if cluster.is_no_coords else NEARBY_FALLBACK
    if not cluster.members:
        return fallback
    tokens = place_tokens(cluster.members[0].address_text, ban_words)
    if not tokens:
        return fallback
    # The first token is usually a building or street; the second a neighbourhood.
    return _truncate(tokens[1] if len(tokens) > 1 else tokens[0])


def apply_unique_labels(clusters: Sequence[Cluster], ban_words: Iterable[str] = ()) -> list[Cluster]:
    """Sort clusters by size (stable) and assign labels unique across the result."""
    ban_words = tuple(ban_words)
    ordered = sorted(clusters, key=lambda cluster: cluster.count, reverse=True)
    used: dict[str, int] = {}
    taken: set[str] = set()
    for cluster in ordered:
        base = label_for(cluster, ban_words)
        count = used.get(base, 0) + 1
        label = base if count == 1 else f"{base} #{count}"
        # A literal address such as "Main Street #2" can collide with a suffixed one.
        while label in taken:
            count += 1
            label = f"{base} #{count}"
        used[base] = count
        taken.add(label)
        cluster.label = label
    return ordered


def derive_location_key(address: Optional[str]) -> Optional[str]:
    """Merchant locality from a business address, e.g. "FJHQ+2GC, Thimphu, Bhutan" -> "thimphu"."""
    if not address or not isinstance(address, str):
        return None
    parts = [part.strip() for part in address.split("\n")[0].split(",") if part.strip()]
    for part in reversed(parts):
        if part.lower() in GLOBAL_BAN_WORDS:
            continue
        if is_numericish(part) or is_plus_codeish(part):
            continue
        return part.lower()
    return None
