"""Resolve free-text provider specialties to market benchmark rows.

Matching order (first rule that succeeds wins):
1. Exact: case-insensitive comparison of trimmed labels
2. Normalized: labels equal after folding case, whitespace and punctuation
3. Synonym: caller-supplied map from free-text label to market label
4. Missing: no usable market row

Also provides proximity scoring used to suggest synonym entries for
specialties that fall through to Missing.
"""

import re
from typing import Dict, Iterable, List, Literal, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .schemas import MarketRecord


MatchStatus = Literal["Exact", "Normalized", "Synonym", "Missing"]

# Minimum proximity score before a mapping is suggested.
SUGGEST_THRESHOLD = 0.45
CONTAINMENT_SCORE = 0.92
LEVENSHTEIN_WEIGHT = 0.85
LEVENSHTEIN_MAX_LEN = 40


class MarketMatch(BaseModel):
    """Outcome of matching one provider specialty."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    market_row: Optional[MarketRecord] = Field(None, description="Matched market row")
    status: MatchStatus = Field("Missing", description="Which rule matched")
    matched_key: Optional[str] = Field(None, description="Market label that matched")

    @property
    def found(self) -> bool:
        return self.market_row is not None


def normalize_specialty_key(label: Optional[str]) -> str:
    """Fold case, strip punctuation and collapse whitespace."""
    if not label:
        return ""
    key = label.strip().lower()
    key = re.sub(r"[^\w\s]", " ", key)
    return re.sub(r"\s+", " ", key).strip()


def _pick_row(rows: List[MarketRecord], provider_type: Optional[str]) -> MarketRecord:
    """Prefer the row whose provider_type matches the provider's role."""
    if provider_type and len(rows) > 1:
        wanted = provider_type.strip().lower()
        for row in rows:
            if row.provider_type and row.provider_type.strip().lower() == wanted:
                return row
    return rows[0]


def _lookup_synonym(specialty: str, synonym_map: Mapping[str, str]) -> Optional[str]:
    if specialty in synonym_map:
        return synonym_map[specialty]
    lowered = specialty.strip().lower()
    normalized = normalize_specialty_key(specialty)
    for key, target in synonym_map.items():
        if key.strip().lower() == lowered or normalize_specialty_key(key) == normalized:
            return target
    return None


def match_market_row(
    specialty: Optional[str],
    market_rows: Sequence[MarketRecord],
    synonym_map: Optional[Mapping[str, str]] = None,
    provider_type: Optional[str] = None,
) -> MarketMatch:
    """Resolve a provider specialty to a market row.

    Args:
        specialty: Provider's free-text specialty
        market_rows: Market benchmark table
        synonym_map: Free-text label -> market label (case-insensitive)
        provider_type: Provider role, used to choose among duplicate labels

    Returns:
        MarketMatch with the row (or None) and the rule that matched
    """
    if not specialty or not specialty.strip():
        return MarketMatch()

    trimmed = specialty.strip().lower()
    exact = [r for r in market_rows if r.specialty.strip().lower() == trimmed]
    if exact:
        row = _pick_row(exact, provider_type)
        return MarketMatch(market_row=row, status="Exact", matched_key=row.specialty)

    normalized = normalize_specialty_key(specialty)
    if normalized:
        loose = [r for r in market_rows if normalize_specialty_key(r.specialty) == normalized]
        if loose:
            row = _pick_row(loose, provider_type)
            return MarketMatch(market_row=row, status="Normalized", matched_key=row.specialty)

    if synonym_map:
        target = _lookup_synonym(specialty, synonym_map)
        if target:
            target_key = normalize_specialty_key(target)
            via = [r for r in market_rows if normalize_specialty_key(r.specialty) == target_key]
            if via:
                row = _pick_row(via, provider_type)
                return MarketMatch(market_row=row, status="Synonym", matched_key=row.specialty)

    return MarketMatch()


# =============================================================================
# Proximity suggestions
# =============================================================================


def _token_set(label: str) -> set:
    return {t for t in re.split(r"\s*[-_,/]\s*|\s+", normalize_specialty_key(label)) if t}


def _jaccard(a: set, b: set) -> float:
    if not a and not b:
        return 1.0
    inter = len(a & b)
    union = len(a | b)
    return inter / union if union else 0.0


def _levenshtein(a: str, b: str) -> int:
    if not a:
        return len(b)
    if not b:
        return len(a)
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        curr = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            curr.append(min(prev[j] + 1, curr[j - 1] + 1, prev[j - 1] + cost))
        prev = curr
    return prev[-1]


def specialty_similarity(provider: str, market: str) -> float:
    """Similarity score in [0, 1]; higher is a better match."""
    p = normalize_specialty_key(provider)
    m = normalize_specialty_key(market)
    if p == m:
        return 1.0
    if not p or not m:
        return 0.0
    if p in m or m in p:
        return CONTAINMENT_SCORE
    jaccard = _jaccard(_token_set(provider), _token_set(market))
    max_len = max(len(p), len(m))
    lev_ratio = 1 - _levenshtein(p, m) / max_len if max_len <= LEVENSHTEIN_MAX_LEN else 0.0
    return max(jaccard, lev_ratio * LEVENSHTEIN_WEIGHT)


def suggest_specialty_mappings(
    provider_specialties: Iterable[str],
    market_specialties: Iterable[str],
    threshold: float = SUGGEST_THRESHOLD,
) -> Dict[str, str]:
    """Suggest provider -> market label mappings by proximity.

    Each market label is suggested for at most one provider specialty;
    stronger matches claim their label first.
    """
    markets = list(dict.fromkeys(market_specialties))
    if not markets:
        return {}

    candidates = []
    for prov in dict.fromkeys(provider_specialties):
        best_market, best_score = None, 0.0
        for market in markets:
            score = specialty_similarity(prov, market)
            if score > best_score and score >= threshold:
                best_market, best_score = market, score
        if best_market is not None:
            candidates.append((prov, best_market, best_score))

    candidates.sort(key=lambda c: -c[2])
    used = set()
    result = {}
    for prov, market, _ in candidates:
        if market not in used:
            result[prov] = market
            used.add(market)
    return result
