"""
Intent Strategies
=================

Query intent -> precomputed search configuration.

The table is built once at import time and looked up at runtime; adding an
intent means adding one pattern list and one SearchStrategy entry.

Example:
    intent = classify_intent("Who calls PaymentService.charge?")
    strategy = get_strategy(intent)    # USAGE: deeper, CALLS-oriented expansion
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple

from codekg.config.settings import FusionWeights


class QueryIntent(str, Enum):
    """What the user is asking about."""
    IMPLEMENTATION = "implementation"
    USAGE = "usage"
    CONFIGURATION = "configuration"
    DISCOVERY = "discovery"
    STATUS = "status"
    GENERAL = "general"


@dataclass(frozen=True)
class SearchStrategy:
    """
    Search configuration for one intent.

    Attributes:
        intent: Intent this strategy serves
        lexical_weight: Fusion weight of lexical scores
        vector_weight: Fusion weight of vector scores
        expansion_depth: Hop bound, None keeps the configured depth
        relationship_types: Edge types to traverse, None traverses all
        type_boosts: Multipliers for expansion-only nodes by node type
    """
    intent: QueryIntent
    lexical_weight: float
    vector_weight: float
    expansion_depth: Optional[int] = None
    relationship_types: Optional[Tuple[str, ...]] = None
    type_boosts: Mapping[str, float] = field(default_factory=dict)

    def fusion_weights(self, base: FusionWeights) -> FusionWeights:
        return FusionWeights(
            lexical_weight=self.lexical_weight,
            vector_weight=self.vector_weight,
            single_signal_discount=base.single_signal_discount,
        )


_PATTERNS: Dict[QueryIntent, List[re.Pattern]] = {
    QueryIntent.IMPLEMENTATION: [
        re.compile(p, re.IGNORECASE) for p in (
            r"how\s+does.*work", r"implementation\s+of", r"algorithm\s+for",
            r"logic\s+behind", r"how\s+is.*implemented", r"code\s+for", r"source\s+of",
        )
    ],
    QueryIntent.USAGE: [
        re.compile(p, re.IGNORECASE) for p in (
            r"where\s+is.*used", r"what\s+uses", r"called\s+by", r"dependencies\s+of",
            r"references\s+to", r"who\s+calls", r"consumers\s+of",
        )
    ],
    QueryIntent.CONFIGURATION: [
        re.compile(p, re.IGNORECASE) for p in (
            r"\bconfig(uration)?\b", r"\bproperties\s+(for|of)\b", r"\bsettings\b",
            r"\bparameters\s+(for|of)\b", r"environment\s+variables", r"application\.ya?ml",
            r"@Value|@ConfigurationProperties",
        )
    ],
    QueryIntent.DISCOVERY: [
        re.compile(p, re.IGNORECASE) for p in (
            r"what\s+handles", r"responsible\s+for", r"\bmanages\b", r"\bcontrols\b",
            r"\borchestrates\b", r"\bprocesses\b", r"service\s+for",
        )
    ],
    QueryIntent.STATUS: [
        re.compile(p, re.IGNORECASE) for p in (
            r"\bstatus(es)?\b", r"\bstates?\s+(of|for)\b", r"\bconditions?\s+(of|for)\b",
            r"\bprogress\s+(of|for)\b", r"\bphases?\b", r"workflow\s+state", r"execution\s+status",
        )
    ],
}


STRATEGIES: Dict[QueryIntent, SearchStrategy] = {
    QueryIntent.IMPLEMENTATION: SearchStrategy(
        intent=QueryIntent.IMPLEMENTATION,
        lexical_weight=0.6,
        vector_weight=0.4,
        expansion_depth=2,
        relationship_types=("CONTAINS", "CALLS", "IMPLEMENTS", "EXTENDS", "DESCRIBES"),
        type_boosts={"Method": 1.2, "Class": 1.1},
    ),
    QueryIntent.USAGE: SearchStrategy(
        intent=QueryIntent.USAGE,
        lexical_weight=0.5,
        vector_weight=0.5,
        expansion_depth=3,
        relationship_types=("CALLS", "USES", "DEPENDS_ON", "CONTAINS"),
        type_boosts={"Method": 1.2},
    ),
    QueryIntent.CONFIGURATION: SearchStrategy(
        intent=QueryIntent.CONFIGURATION,
        lexical_weight=0.7,
        vector_weight=0.3,
        expansion_depth=1,
        type_boosts={"Class": 1.2, "Configuration": 1.3},
    ),
    QueryIntent.DISCOVERY: SearchStrategy(
        intent=QueryIntent.DISCOVERY,
        lexical_weight=0.3,
        vector_weight=0.7,
        expansion_depth=2,
        type_boosts={"Class": 1.2, "Interface": 1.1},
    ),
    QueryIntent.STATUS: SearchStrategy(
        intent=QueryIntent.STATUS,
        lexical_weight=0.5,
        vector_weight=0.5,
        expansion_depth=2,
        type_boosts={"Enum": 1.3},
    ),
    QueryIntent.GENERAL: SearchStrategy(
        intent=QueryIntent.GENERAL,
        lexical_weight=0.5,
        vector_weight=0.5,
    ),
}


def classify_intent(query: str) -> QueryIntent:
    """
    Pick the intent whose patterns match the query most often.

    Ties go to the intent declared first; no match gives GENERAL.
    """
    best_intent = QueryIntent.GENERAL
    best_count = 0
    for intent, patterns in _PATTERNS.items():
        count = sum(1 for p in patterns if p.search(query))
        if count > best_count:
            best_intent, best_count = intent, count
    return best_intent


def get_strategy(intent: QueryIntent) -> SearchStrategy:
    return STRATEGIES[intent]
