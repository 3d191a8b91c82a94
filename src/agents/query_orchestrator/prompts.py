"""
LLM prompts for Query Orchestrator components.

These prompts are used by the decomposer, the oracle-backed classifier and
the aggregator. Each demands exactly one JSON object back.
"""

# =============================================================================
# DECOMPOSITION PROMPT
# =============================================================================

DECOMPOSITION_SYSTEM_PROMPT = """You are a query decomposition specialist.

Your task is to decide whether a user request contains several distinct intents and, if so, split it into self-contained sub-requests that can each be handled independently.

Return valid JSON only."""


DECOMPOSITION_PROMPT = """Analyze the user request below and split it into sub-requests if it contains more than one distinct intent.

REQUEST: "{query}"

SUPPORTED KINDS:
{kinds}

RULES:
1. If the request has only one intent, return a single sub-request
2. If it mixes several intents, return one sub-request per intent
3. Each sub-request must be self-contained and answerable on its own
4. Set priority from 1 to 10 (lower runs and displays first)
5. Confidence is a number between 0.0 and 1.0

Respond in JSON format:
{{
    "has_multiple_intents": true,
    "sub_requests": [
        {{
            "id": "sub_1",
            "text": "What is the PPI this month?",
            "kind": "knowledge_query",
            "priority": 1,
            "confidence": 0.9,
            "rationale": "Asks for a price index value"
        }},
        {{
            "id": "sub_2",
            "text": "Compute 123*456",
            "kind": "math_calculation",
            "priority": 2,
            "confidence": 0.95,
            "rationale": "Explicit arithmetic"
        }}
    ],
    "rationale": "Brief explanation of the decomposition"
}}"""


KIND_DESCRIPTIONS = {
    "knowledge_query": "Knowledge base question (price indices, machine learning concepts, ...)",
    "math_calculation": "Arithmetic on two numbers (addition, multiplication)",
    "weather_query": "Current weather for a city",
}


# =============================================================================
# CLASSIFICATION PROMPT
# =============================================================================

CLASSIFICATION_SYSTEM_PROMPT = """You are a query classification system. Pick the single best category for the query. Return valid JSON only."""


CLASSIFICATION_PROMPT = """Classify the query below into exactly one of the candidate categories.

QUERY: "{query}"

CANDIDATE CATEGORIES:
{categories}

Consider:
1. Keywords and terminology in the query
2. The type of question and its subject area
3. What each category covers

Respond in JSON format:
{{"category": "<one of: {category_keys}>", "confidence": 0.9, "rationale": "Short reason"}}"""


# =============================================================================
# AGGREGATION PROMPT
# =============================================================================

AGGREGATION_SYSTEM_PROMPT = """You are an answer synthesizer. Merge the results of several sub-requests into one coherent, natural answer to the user's original request. Return valid JSON only."""


AGGREGATION_PROMPT = """Combine the sub-request results below into a single answer.

ORIGINAL REQUEST: "{query}"

{results}

GUIDELINES:
1. Answer the original request directly and completely
2. Integrate the results naturally; do not just list them
3. Mention failed parts briefly without overemphasizing them
4. Keep a professional, friendly tone

Respond in JSON format:
{{
    "final_text": "The merged answer",
    "rationale": "How the results were combined"
}}"""


def format_kinds(kind_descriptions=None) -> str:
    descriptions = kind_descriptions or KIND_DESCRIPTIONS
    return "\n".join(
        f"{i}. {key} - {text}" for i, (key, text) in enumerate(descriptions.items(), start=1)
    )
