"""Resolve free-text company names against the reference list."""

from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Set

from pydantic import BaseModel, Field

from ..models import CompanyMatch, CompanyReference
from .normalize import name_tokens, normalize_name, passes_token_guard, token_overlap

# Float slack so a 7/10 overlap compares equal to a 0.70 threshold
_EPSILON = 1e-9


class Resolution(BaseModel):
    """A reference entry matched to an extracted name."""

    extracted_name: str = Field(..., description="Name as extracted from the article")
    reference: CompanyReference = Field(..., description="Matched reference entry")
    confidence: float = Field(..., ge=0.0, le=1.0)
    match_type: str = Field(..., description="ticker, exact or overlap")

    def to_match(self, confidence: Optional[float] = None) -> CompanyMatch:
        """CompanyMatch for this resolution."""
        return CompanyMatch(
            extracted_name=self.extracted_name,
            resolved_name=self.reference.name,
            nse_code=self.reference.nse_code,
            bse_code=self.reference.bse_code,
            market_cap=self.reference.market_cap,
            confidence=self.confidence if confidence is None else confidence,
        )


class CompanyResolver:
    """Greedy nearest-match resolver over the reference company list.

    Each name is resolved independently: ticker code first, then normalized
    exact name, then the best token overlap at or above the threshold. A
    candidate is only returned when its market cap is known and at or above
    ``min_market_cap``.
    """

    def __init__(
        self,
        companies: Sequence[CompanyReference],
        min_market_cap: float = 30_000_000,
        threshold: float = 0.70,
    ) -> None:
        self.min_market_cap = min_market_cap
        self.threshold = threshold
        self.companies = list(companies)

        self._by_code: Dict[str, CompanyReference] = {}
        self._by_name: Dict[str, List[int]] = defaultdict(list)
        self._by_token: Dict[str, Set[int]] = defaultdict(set)
        self._tokens: List[List[str]] = []

        for index, company in enumerate(self.companies):
            for code in (company.nse_code, company.bse_code):
                if code:
                    self._by_code.setdefault(code.strip().upper(), company)
            tokens = name_tokens(company.name)
            self._tokens.append(tokens)
            self._by_name[" ".join(tokens)].append(index)
            for token in tokens:
                self._by_token[token].add(index)

    def __len__(self) -> int:
        return len(self.companies)

    def _eligible(self, company: CompanyReference) -> bool:
        return company.market_cap is not None and company.market_cap >= self.min_market_cap

    def _pick(self, indexes) -> CompanyReference:
        # Ties go to the larger company
        return max(
            (self.companies[i] for i in indexes),
            key=lambda c: c.market_cap or 0.0,
        )

    def best_candidate(self, name: str) -> Optional[Resolution]:
        """Best match for a name before the market-cap gate."""
        cleaned = (name or "").strip()
        if not cleaned:
            return None

        company = self._by_code.get(cleaned.upper())
        if company is not None:
            return Resolution(
                extracted_name=cleaned, reference=company, confidence=1.0, match_type="ticker"
            )

        tokens = name_tokens(cleaned)
        if not tokens:
            return None

        exact = [
            i for i in self._by_name.get(normalize_name(cleaned), [])
            if passes_token_guard(tokens, self._tokens[i])
        ]
        if exact:
            return Resolution(
                extracted_name=cleaned,
                reference=self._pick(exact),
                confidence=1.0,
                match_type="exact",
            )

        # Only references sharing a token can score above zero
        candidates: Set[int] = set()
        for token in set(tokens):
            candidates |= self._by_token.get(token, set())

        best_score = 0.0
        best: List[int] = []
        for i in candidates:
            if not passes_token_guard(tokens, self._tokens[i]):
                continue
            score = token_overlap(tokens, self._tokens[i])
            if score > best_score + _EPSILON:
                best_score, best = score, [i]
            elif abs(score - best_score) <= _EPSILON:
                best.append(i)

        if not best or best_score + _EPSILON < self.threshold:
            return None

        return Resolution(
            extracted_name=cleaned,
            reference=self._pick(best),
            confidence=round(min(best_score, 1.0), 4),
            match_type="overlap",
        )

    def resolve(self, name: str) -> Optional[Resolution]:
        """Resolve one name; None when nothing passes the threshold and market-cap gate."""
        candidate = self.best_candidate(name)
        if candidate is None or not self._eligible(candidate.reference):
            return None
        return candidate

    def resolve_all(self, names: Sequence[str]) -> List[Resolution]:
        """Resolve names independently, keeping one resolution per reference entry."""
        resolutions: List[Resolution] = []
        seen: Set[str] = set()
        for name in names:
            resolution = self.resolve(name)
            if resolution is None:
                continue
            key = resolution.reference.nse_code or resolution.reference.bse_code or resolution.reference.name
            if key in seen:
                continue
            seen.add(key)
            resolutions.append(resolution)
        return resolutions
