"""
Query Orchestrator - Intent Classifier
Version: 1.0
Purpose: Text -> (category, confidence, rationale)

Two interchangeable strategies share the same async classify() contract:
- HeuristicClassifier: deterministic keyword scoring, never fails
- OracleClassifier: structured LLM call, raises OracleUnavailable
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Mapping, Optional, Pattern, Protocol, Sequence, Tuple

from pydantic import BaseModel, Field

from .exceptions import OracleUnavailable
from .oracle import Oracle, call_oracle, extract_json_object, require_confidence, require_str
from .prompts import CLASSIFICATION_PROMPT, CLASSIFICATION_SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class Classification(BaseModel):
    """Typed classifier output"""

    category: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    rationale: str


class IntentClassifier(Protocol):
    async def classify(self, text: str) -> Classification:
        ...


# ============================================================================
# KEYWORD TABLE FOR SUB-REQUEST KINDS
# ============================================================================

INTENT_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "knowledge_query": (
        "what is",
        "explain",
        "how does",
        "price index",
        "inflation",
        "machine learning",
        "cpi",
        "ppi",
        "是什么",
        "多少",
        "解释",
    ),
    "math_calculation": (
        "calculate",
        "compute",
        "multiply",
        "times",
        "plus",
        "sum",
        "add",
        "*",
        "×",
        "+",
        "计算",
        "乘",
        "加",
    ),
    "weather_query": (
        "weather",
        "temperature",
        "forecast",
        "rain",
        "humidity",
        "天气",
        "气温",
    ),
}


# ============================================================================
# HEURISTIC CLASSIFIER
# ============================================================================

_WORDLIKE = re.compile(r"^[a-z0-9][a-z0-9 '\-]*$")


def _keyword_pattern(keyword: str) -> Pattern[str]:
    """ASCII words match on word boundaries; symbols and CJK match as substrings."""
    escaped = re.escape(keyword)
    if _WORDLIKE.match(keyword):
        return re.compile(rf"(?<![a-z0-9]){escaped}(?![a-z0-9])")
    return re.compile(escaped)


class HeuristicClassifier:
    """
    Scores text against curated keyword lists per category.

    Each matched keyword adds a fixed weight that grows with keyword length;
    every distinct match beyond the first adds a small bonus. Scores are
    capped at 1.0.
    """

    SHORT_KEYWORD_WEIGHT = 0.3  # <= 3 characters
    MEDIUM_KEYWORD_WEIGHT = 0.4  # 4-7 characters
    LONG_KEYWORD_WEIGHT = 0.5  # >= 8 characters
    MULTI_MATCH_BONUS = 0.1

    def __init__(
        self,
        keyword_table: Mapping[str, Sequence[str]],
        default_category: Optional[str] = None,
    ):
        if not keyword_table:
            raise ValueError("keyword_table must not be empty")
        self._patterns: Dict[str, List[Tuple[str, Pattern[str]]]] = {
            category: [(kw.lower(), _keyword_pattern(kw.lower())) for kw in keywords]
            for category, keywords in keyword_table.items()
        }
        self.default_category = default_category or next(iter(keyword_table))

    @property
    def categories(self) -> List[str]:
        return list(self._patterns.keys())

    @classmethod
    def keyword_weight(cls, keyword: str) -> float:
        if len(keyword) <= 3:
            return cls.SHORT_KEYWORD_WEIGHT
        if len(keyword) < 8:
            return cls.MEDIUM_KEYWORD_WEIGHT
        return cls.LONG_KEYWORD_WEIGHT

    def matches(self, text: str, category: str) -> List[str]:
        lowered = text.lower()
        return [kw for kw, pattern in self._patterns.get(category, []) if pattern.search(lowered)]

    def score_category(self, text: str, category: str) -> Tuple[float, List[str]]:
        matched = self.matches(text, category)
        if not matched:
            return 0.0, []
        score = sum(self.keyword_weight(kw) for kw in matched)
        score += self.MULTI_MATCH_BONUS * (len(matched) - 1)
        return min(score, 1.0), matched

    def score(self, text: str) -> Dict[str, float]:
        """Score every category; keys keep registration order"""
        return {category: self.score_category(text, category)[0] for category in self._patterns}

    def best_match(self, text: str) -> Classification:
        """Argmax over categories; ties go to the earlier-registered category."""
        best_category = self.default_category
        best_score = 0.0
        best_matches: List[str] = []

        for category in self._patterns:
            score, matched = self.score_category(text, category)
            if score > best_score:
                best_category, best_score, best_matches = category, score, matched

        if not best_matches:
            return Classification(
                category=best_category,
                confidence=0.0,
                rationale="no keywords matched",
            )

        return Classification(
            category=best_category,
            confidence=round(best_score, 3),
            rationale=f"keyword score {best_score:.2f} from {', '.join(best_matches)}",
        )

    async def classify(self, text: str) -> Classification:
        return self.best_match(text)


# ============================================================================
# ORACLE-BACKED CLASSIFIER
# ============================================================================


class OracleClassifier:
    """
    Asks the oracle to pick one of a fixed set of categories.

    Never retries: one call per classify(). Any malformed or out-of-range
    output raises OracleUnavailable.
    """

    def __init__(
        self,
        oracle: Oracle,
        categories: Mapping[str, str],
        timeout_seconds: Optional[float] = None,
    ):
        """
        Args:
            oracle: Language model adapter
            categories: Category key -> description, enumerated in the prompt
            timeout_seconds: Upper bound for the single oracle call
        """
        if not categories:
            raise ValueError("categories must not be empty")
        self.oracle = oracle
        self.categories = dict(categories)
        self.timeout_seconds = timeout_seconds

    def build_prompt(self, text: str) -> str:
        listing = "\n\n".join(
            f"{i}. {key}\n   {description}"
            for i, (key, description) in enumerate(self.categories.items(), start=1)
        )
        return CLASSIFICATION_PROMPT.format(
            query=text,
            categories=listing,
            category_keys=", ".join(self.categories),
        )

    def parse(self, response: str) -> Classification:
        """Validate the oracle response exhaustively."""
        data = extract_json_object(response)

        category = require_str(data, "category")
        if category not in self.categories:
            raise OracleUnavailable(f"Unknown category: {category}", raw_response=response)

        return Classification(
            category=category,
            confidence=require_confidence(data),
            rationale=require_str(data, "rationale"),
        )

    async def classify(self, text: str) -> Classification:
        response = await call_oracle(
            self.oracle,
            self.build_prompt(text),
            system=CLASSIFICATION_SYSTEM_PROMPT,
            timeout_seconds=self.timeout_seconds,
        )
        result = self.parse(response)
        logger.debug(f"Oracle classified as {result.category} ({result.confidence:.2f})")
        return result
