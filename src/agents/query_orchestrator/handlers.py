"""
Query Orchestrator - Sub-Task Handlers
Version: 1.0
Purpose: One async handler per SubRequestKind, each SubRequest -> output text

Handlers raise OrchestrationError subclasses for failures that should mark
the SubResult as failed. Knowledge retrieval and weather service errors are
reported as output text instead.
"""

from __future__ import annotations

import logging
import re
from typing import Awaitable, Callable, Dict, List, Optional, Tuple, Union

from src.tools.calculator import add, format_number, multiply
from src.tools.weather import WeatherClient, WeatherServiceError, format_report

from .exceptions import InsufficientOperands, LookupFailed
from .models.orchestration_models import SubRequest, SubRequestKind
from .router import DomainRouter

logger = logging.getLogger(__name__)

Handler = Callable[[SubRequest], Awaitable[str]]
Number = Union[int, float]


# ============================================================================
# CALCULATION
# ============================================================================

_NUMBER = re.compile(r"\d+(?:\.\d+)?")

MULTIPLICATION_MARKERS = ("*", "×", "x", "乘", "times", "multiply", "multiplied", "product")
ADDITION_MARKERS = ("+", "加", "plus", "add", "sum")

_WORD_MARKER = re.compile(r"^[a-z]+$")


def _has_marker(text: str, markers: Tuple[str, ...]) -> bool:
    lowered = text.lower()
    for marker in markers:
        if _WORD_MARKER.match(marker):
            # "x" only counts between digits, as in "12x8" or "12 x 8"
            if marker == "x":
                if re.search(r"\d\s*x\s*\d", lowered):
                    return True
            elif re.search(rf"\b{marker}\b", lowered):
                return True
        elif marker in lowered:
            return True
    return False


def extract_operands(text: str) -> Tuple[Number, Number]:
    """First two numeric tokens of the text."""
    tokens = _NUMBER.findall(text)
    if len(tokens) < 2:
        raise InsufficientOperands(
            f"Need two numbers, found {len(tokens)} in: {text}",
            details={"found": tokens},
        )
    return _to_number(tokens[0]), _to_number(tokens[1])


def _to_number(token: str) -> Number:
    return float(token) if "." in token else int(token)


def infer_operator(text: str) -> str:
    """'*' or '+'; multiplication wins when both or neither are present."""
    if _has_marker(text, MULTIPLICATION_MARKERS):
        return "*"
    if _has_marker(text, ADDITION_MARKERS):
        return "+"
    return "*"


async def handle_calculation(sub_request: SubRequest) -> str:
    a, b = extract_operands(sub_request.text)
    if infer_operator(sub_request.text) == "+":
        return f"{format_number(a)} + {format_number(b)} = {format_number(add(a, b))}"
    return f"{format_number(a)} × {format_number(b)} = {format_number(multiply(a, b))}"


# ============================================================================
# WEATHER
# ============================================================================

CITY_TRANSLATIONS: Dict[str, str] = {
    "北京": "Beijing",
    "上海": "Shanghai",
    "广州": "Guangzhou",
    "深圳": "Shenzhen",
    "杭州": "Hangzhou",
    "南京": "Nanjing",
    "成都": "Chengdu",
    "武汉": "Wuhan",
}

CITY_STOP_WORDS = frozenset(
    {
        "a", "about", "also", "and", "at", "check", "current", "currently", "for",
        "get", "how", "how's", "in", "is", "like", "local", "me", "my", "now",
        "please", "right", "show", "tell", "the", "this", "today", "today's",
        "tomorrow", "tonight", "week", "what", "what's", "whats", "your",
    }
)

_WEATHER_PREPOSITION = re.compile(
    r"weather\s+(?:in|for|at)\s+([A-Za-z][A-Za-z'\-]*(?:\s+[A-Za-z][A-Za-z'\-]*)*)",
    re.IGNORECASE,
)
_CITY_BEFORE_WEATHER = re.compile(
    r"((?:[A-Z][A-Za-z'\-]*\s+)*[A-Z][A-Za-z\-]*)(?:'s)?\s+weather"
)
_CJK_CITY = re.compile(r"([\u4e00-\u9fff]+?)(?:的)?天气")

# Stripped from either side of a CJK match: request verbs before the city,
# time words between the city and 天气
CJK_LEAD_INS = ("我想知道", "帮我查", "告诉我", "查一下", "看一下", "请问", "查询", "查查", "看看", "帮我", "请")
CJK_TIME_WORDS = ("今天", "明天", "后天", "现在", "今日", "本周")


def _strip_cjk_affixes(run: str) -> str:
    changed = True
    while changed and run:
        changed = False
        for lead in CJK_LEAD_INS:
            if run.startswith(lead) and len(run) > len(lead):
                run, changed = run[len(lead):], True
                break
        for word in CJK_TIME_WORDS:
            if run.endswith(word) and len(run) > len(word):
                run, changed = run[: -len(word)], True
                break
    return run


def _clean_city(words: List[str], *, from_end: bool) -> Optional[str]:
    """Keep the run of non-stop-words nearest the weather marker."""
    kept: List[str] = []
    ordered = reversed(words) if from_end else iter(words)
    for word in ordered:
        if word.lower() in CITY_STOP_WORDS:
            if kept:
                break
            continue
        kept.append(word)
    if from_end:
        kept.reverse()
    return " ".join(kept) or None


def extract_city(text: str) -> Optional[str]:
    """
    City mentioned in a weather request, or None.

    Recognized forms: known Chinese city names anywhere in the text,
    "weather in|for|at <City>", "<City> weather", "<City>'s weather" and
    "<城市>(的)天气".
    """
    for chinese in CITY_TRANSLATIONS:
        if chinese in text:
            return chinese

    match = _WEATHER_PREPOSITION.search(text)
    if match:
        city = _clean_city(match.group(1).split(), from_end=False)
        if city:
            return city

    match = _CITY_BEFORE_WEATHER.search(text)
    if match:
        city = _clean_city(match.group(1).split(), from_end=True)
        if city:
            return city

    match = _CJK_CITY.search(text)
    if match:
        return _strip_cjk_affixes(match.group(1))

    return None


def translate_city(city: str) -> str:
    """Map known city names to the weather service's locale."""
    if city in CITY_TRANSLATIONS:
        return CITY_TRANSLATIONS[city]
    if city.isascii():
        return " ".join(part.capitalize() for part in city.split())
    return city


class WeatherHandler:
    """Looks up current weather for the city named in the sub-request."""

    def __init__(self, client: WeatherClient, fallback_city: str = "Beijing"):
        self.client = client
        self.fallback_city = fallback_city

    def resolve_city(self, text: str) -> str:
        city = extract_city(text)
        if city is None:
            logger.debug(f"No city found in '{text}', using {self.fallback_city}")
            return self.fallback_city
        return translate_city(city)

    async def __call__(self, sub_request: SubRequest) -> str:
        city = self.resolve_city(sub_request.text)
        try:
            report = await self.client.lookup(city)
        except WeatherServiceError as e:
            error = LookupFailed(e.message, reason=e.reason, city=city, original_error=e)
            logger.warning(f"Weather lookup failed: {error.as_failure_reason()}")
            return format_lookup_failure(error)
        return format_report(report)


def format_lookup_failure(error: LookupFailed) -> str:
    if error.reason == LookupFailed.UNKNOWN_CITY:
        return f"Weather lookup failed: city '{error.city}' was not recognized."
    return f"Weather lookup for {error.city} failed: service unavailable ({error.message})."


# ============================================================================
# KNOWLEDGE
# ============================================================================


class KnowledgeHandler:
    """Delegates knowledge queries to the domain router."""

    def __init__(self, router: DomainRouter, domain_hint: Optional[str] = None):
        self.router = router
        self.domain_hint = domain_hint

    async def __call__(self, sub_request: SubRequest) -> str:
        outcome = await self.router.route(sub_request, self.domain_hint)
        return outcome.output


# ============================================================================
# REGISTRY
# ============================================================================


def build_handlers(
    router: DomainRouter,
    weather_client: WeatherClient,
    fallback_city: str = "Beijing",
) -> Dict[SubRequestKind, Handler]:
    """Default kind -> handler bindings"""
    return {
        SubRequestKind.KNOWLEDGE_QUERY: KnowledgeHandler(router),
        SubRequestKind.CALCULATION: handle_calculation,
        SubRequestKind.WEATHER_LOOKUP: WeatherHandler(weather_client, fallback_city),
    }
