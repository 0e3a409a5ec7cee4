"""House/term scoping.

Every query is gated by a Scope so Lok Sabha 17 and Lok Sabha 18 data are
never mixed by accident:

    house=Lok Sabha,  ls_term=18    → Lok Sabha, lsTerm 18
    house=Lok Sabha,  ls_term=both  → Lok Sabha, lsTerm in {17, 18}
    house=Rajya Sabha               → Rajya Sabha (no term; ls_term ignored)
    house unset / "Both Houses"     → Rajya Sabha ∪ Lok Sabha with the term selection

TermHouseScope.resolve builds the Scope once per request; everything
downstream (record stores, Mongo filters, cache keys) asks the Scope
instead of re-deriving the filter.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlencode

from mplads import config
from mplads.errors import InvalidScope
from mplads.models.records import LOK_SABHA, LS_TERMS, RAJYA_SABHA, canonical_house

logger = logging.getLogger(__name__)

BOTH_TERMS = "both"
TERM_SELECTIONS = ("17", "18", BOTH_TERMS)
FALLBACK_TERM = "18"


@dataclass(frozen=True)
class Scope:
    """Immutable house/term predicate."""

    house: Optional[str]          # LOK_SABHA, RAJYA_SABHA or None for mixed
    selection: str                # "17", "18" or "both"

    @property
    def lok_sabha_terms(self) -> Tuple[int, ...]:
        if self.house == RAJYA_SABHA:
            return ()
        if self.selection == BOTH_TERMS:
            return LS_TERMS
        return (int(self.selection),)

    @property
    def includes_rajya_sabha(self) -> bool:
        return self.house in (None, RAJYA_SABHA)

    @property
    def includes_lok_sabha(self) -> bool:
        return self.house in (None, LOK_SABHA)

    @property
    def is_mixed(self) -> bool:
        return self.house is None

    @property
    def label(self) -> str:
        ls_label = f"{LOK_SABHA} {','.join(str(t) for t in self.lok_sabha_terms)}"
        if self.house == RAJYA_SABHA:
            return RAJYA_SABHA
        if self.house == LOK_SABHA:
            return ls_label
        return f"{RAJYA_SABHA} + {ls_label}"

    def matches(self, house: Optional[str], ls_term: Optional[int]) -> bool:
        """True when a record with this house/term belongs to the scope."""
        if house == RAJYA_SABHA:
            return self.includes_rajya_sabha
        if house == LOK_SABHA:
            return self.includes_lok_sabha and ls_term in self.lok_sabha_terms
        return False

    def _lok_sabha_clause(self) -> Dict[str, Any]:
        terms = self.lok_sabha_terms
        if len(terms) == 1:
            return {"house": LOK_SABHA, "lsTerm": terms[0]}
        return {"house": LOK_SABHA, "lsTerm": {"$in": list(terms)}}

    def to_mongo_filter(self) -> Dict[str, Any]:
        """The one Mongo filter for this scope."""
        if self.house == RAJYA_SABHA:
            return {"house": RAJYA_SABHA}
        if self.house == LOK_SABHA:
            return self._lok_sabha_clause()
        return {"$or": [{"house": RAJYA_SABHA}, self._lok_sabha_clause()]}

    def params(self) -> Dict[str, str]:
        """Canonical request parameters. Rajya Sabha has no terms, so it omits ls_term."""
        if self.house == RAJYA_SABHA:
            return {"house": "rajya-sabha"}
        house = "lok-sabha" if self.house == LOK_SABHA else "both"
        return {"house": house, "ls_term": self.selection}

    def signature(self) -> str:
        """Canonical query-string form, e.g. ``house=lok-sabha&ls_term=18``."""
        return urlencode(sorted(self.params().items()))


def _normalize_selection(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip().lower()
    if text in TERM_SELECTIONS:
        return text
    return None


def parse_ls_term(value: Any) -> Optional[str]:
    """Strict term parser for collaborators validating raw input.

    Returns None for an absent value, "17"/"18"/"both" otherwise.

    Raises:
        InvalidScope: value is neither numeric, "both", nor a known term
    """
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return None
    selection = _normalize_selection(value)
    if selection is not None:
        return selection
    text = str(value).strip()
    if not text.isdigit():
        raise InvalidScope(f"ls_term must be 17, 18 or 'both', got {value!r}")
    raise InvalidScope(f"unsupported Lok Sabha term {text}; supported terms are {LS_TERMS}")


class TermHouseScope:
    """Resolves request-level house/term parameters into a Scope.

    Never raises: unknown houses resolve to the mixed scope and unknown term
    selections to the configured default.
    """

    def __init__(self, default_term: Optional[str] = None):
        default = _normalize_selection(default_term if default_term is not None else config.DEFAULT_LS_TERM)
        if default is None:
            logger.warning(f"Invalid default Lok Sabha term {default_term!r}; using {FALLBACK_TERM}")
            default = FALLBACK_TERM
        self.default_term = default

    def selection(self, requested_term_selection: Any) -> str:
        selection = _normalize_selection(requested_term_selection)
        if selection is None:
            if requested_term_selection not in (None, ""):
                logger.debug(
                    f"Unrecognized ls_term {requested_term_selection!r}; defaulting to {self.default_term}"
                )
            return self.default_term
        return selection

    def resolve(self, requested_house: Any = None, requested_term_selection: Any = None) -> Scope:
        house = canonical_house(requested_house) if requested_house else None
        if requested_house and house is None:
            logger.debug(f"House {requested_house!r} is not a single house; using mixed scope")
        return Scope(house=house, selection=self.selection(requested_term_selection))
