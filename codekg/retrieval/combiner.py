"""
Result Combiner
===============

Fuses lexical and vector hit lists into a single deduplicated ranking.

Normalization (fixed, strictly increasing):
- lexical: s / (1 + s), maps unbounded full-text scores into [0, 1)
- vector: similarity clipped to [0, 1]

Fusion:
- node in both lists: w_lex * lex + w_vec * vec (weights rescaled to sum 1)
- node in one list: score * single_signal_discount

Output is sorted by combined score desc, ties by node id asc.
"""

from typing import Dict, List, Optional

import structlog

from codekg.config.settings import FusionWeights
from codekg.retrieval.models import RankedResult
from codekg.storage.graph.models import SearchHit

log = structlog.get_logger()


def normalize_lexical(score: float) -> float:
    score = max(0.0, float(score))
    return score / (1.0 + score)


def normalize_vector(score: float) -> float:
    return min(1.0, max(0.0, float(score)))


def _best_scores(hits: List[SearchHit]) -> Dict[str, float]:
    best: Dict[str, float] = {}
    for hit in hits:
        if hit.node_id not in best or hit.score > best[hit.node_id]:
            best[hit.node_id] = hit.score
    return best


class ResultCombiner:
    """
    Weighted fusion of the two search signals.

    Example:
        combiner = ResultCombiner(FusionWeights(lexical_weight=0.4, vector_weight=0.6))
        ranked = combiner.combine(lexical_hits, vector_hits)
    """

    def __init__(self, weights: Optional[FusionWeights] = None):
        self.weights = weights or FusionWeights()

    def combine(
        self,
        lexical_hits: List[SearchHit],
        vector_hits: List[SearchHit],
        weights: Optional[FusionWeights] = None,
    ) -> List[RankedResult]:
        """
        Merge both hit lists into RankedResult entries keyed by node id.

        Args:
            lexical_hits: Raw lexical hits
            vector_hits: Raw vector hits
            weights: Per-call override (e.g. from an intent strategy)

        Returns:
            Deterministically ordered ranking
        """
        fusion = weights or self.weights
        w_lex, w_vec = fusion.normalized()
        discount = fusion.single_signal_discount

        lexical = {nid: normalize_lexical(s) for nid, s in _best_scores(lexical_hits).items()}
        vector = {nid: normalize_vector(s) for nid, s in _best_scores(vector_hits).items()}

        results = []
        for node_id in set(lexical) | set(vector):
            in_lex = node_id in lexical
            in_vec = node_id in vector
            lex_score = lexical.get(node_id, 0.0)
            vec_score = vector.get(node_id, 0.0)

            if in_lex and in_vec:
                combined = w_lex * lex_score + w_vec * vec_score
            elif in_lex:
                combined = lex_score * discount
            else:
                combined = vec_score * discount

            results.append(RankedResult(
                node_id=node_id,
                lexical_score=lex_score,
                vector_score=vec_score,
                combined_score=combined,
                has_lexical=in_lex,
                has_vector=in_vec,
            ))

        results.sort(key=lambda r: (-r.combined_score, r.node_id))

        log.debug(
            "Combined search results",
            lexical=len(lexical),
            vector=len(vector),
            combined=len(results),
            overlap=len(set(lexical) & set(vector)),
        )
        return results
