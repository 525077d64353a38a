"""Re-ranking search.

Over-fetches nearest neighbours from the vector index, applies soft boosts
and bonuses, sorts on the adjusted score and enforces a per-document
diversity cap in a single greedy pass.
"""

import re

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.SearchHit import RescoredHit, SearchHit
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import SearchConfig
from shared.models.search import Classification, DocBoostRule, SearchBoosts

FORMAT_TAG_BONUS = 0.03
PHASE_TAG_BONUS = 0.03
FRESHNESS_BASE_YEAR = 2018
FRESHNESS_PER_YEAR = 0.005

_YEAR = re.compile(r"(?<!\d)(\d{4})(?!\d)")


def freshness_bonus(version: str | None) -> float:
    """Bonus of 0.005 per year after 2018 for the first 4-digit year in the version label."""
    match = _YEAR.search(version or "")
    if not match:
        return 0.0
    return max(0, int(match.group(1)) - FRESHNESS_BASE_YEAR) * FRESHNESS_PER_YEAR


def _matched(preferred: list[str], tags: list[str]) -> int:
    tags_lower = {t.lower() for t in tags}
    return len({p.lower() for p in preferred} & tags_lower)


def rescore_hits(hits: list[SearchHit], boosts: SearchBoosts) -> list[RescoredHit]:
    """Compute the adjusted score of every hit, keeping the input order.

    adjusted = score * doc_boost + 0.03 * matched format tags
               + 0.03 * matched phase tags + freshness bonus
    """
    rescored: list[RescoredHit] = []
    for hit in hits:
        payload = hit.payload
        adjusted = hit.score * boosts.doc_boosts.get(payload.doc_id, 1.0)
        adjusted += FORMAT_TAG_BONUS * _matched(boosts.prefer_format, payload.format)
        adjusted += PHASE_TAG_BONUS * _matched(boosts.prefer_phase, payload.phase)
        if boosts.freshness:
            adjusted += freshness_bonus(payload.version)
        rescored.append(RescoredHit(id=hit.id, score=hit.score, payload=payload, adjusted_score=adjusted))
    return rescored


def apply_diversity_cap(hits: list[RescoredHit], k_final: int, max_per_doc: int) -> list[RescoredHit]:
    """Greedy left-to-right selection with at most ``max_per_doc`` hits per document.

    Expects hits already sorted by adjusted score. A hit over its document's
    cap is dropped for good, even if it outscores later hits of other documents.
    """
    per_doc: dict[str, int] = {}
    selected: list[RescoredHit] = []
    for hit in hits:
        if len(selected) >= k_final:
            break
        doc_id = hit.payload.doc_id
        if per_doc.get(doc_id, 0) >= max_per_doc:
            continue
        per_doc[doc_id] = per_doc.get(doc_id, 0) + 1
        selected.append(hit)
    return selected


def rerank(hits: list[SearchHit], k_final: int, boosts: SearchBoosts) -> list[RescoredHit]:
    """Rescore, sort descending (stable on ties) and apply the diversity cap."""
    rescored = rescore_hits(hits, boosts)
    ordered = sorted(rescored, key=lambda h: h.adjusted_score, reverse=True)
    return apply_diversity_cap(ordered, k_final=k_final, max_per_doc=boosts.max_per_doc)


def infer_doc_boosts(question: str, rules: list[DocBoostRule]) -> dict[str, float]:
    """Map documents mentioned in the question to their boost factor."""
    text = question.lower()
    boosts: dict[str, float] = {}
    for rule in rules:
        if re.search(rule.pattern, text):
            boosts[rule.doc_id] = rule.factor
    return boosts


class SearchService:
    """Runs the over-fetch and re-ranking steps against a RAG client."""

    def __init__(
        self,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        search_config: SearchConfig | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._rag_client = rag_client
        self.config = search_config or SearchConfig()

    async def do_search(
        self,
        query_vector: list[float],
        k_raw: int | None = None,
        k_final: int | None = None,
        soft_filter: Classification | None = None,
        boosts: SearchBoosts | None = None,
    ) -> list[RescoredHit]:
        """Retrieve and re-rank hits for a query vector.

        Args:
            query_vector (list[float]): Embedded question.
            k_raw (int | None): Candidates to over-fetch (default from config).
            k_final (int | None): Maximum hits returned (default from config).
            soft_filter (Classification | None): Tags narrowing the over-fetch; an
                unfiltered over-fetch tops up when the filter leaves fewer than k_final hits.
            boosts (SearchBoosts | None): Soft adjustments and diversity cap.

        Returns:
            list[RescoredHit]: At most k_final hits ordered by adjusted score.

        Raises:
            ValueError: If k_raw does not exceed k_final.
            ProviderError: If the vector index fails.
        """
        k_raw = k_raw or self.config.k_raw
        k_final = k_final or self.config.k_final
        if k_raw <= k_final:
            raise ValueError(f"k_raw ({k_raw}) must exceed k_final ({k_final}).")
        boosts = boosts or SearchBoosts(max_per_doc=self.config.max_per_doc)

        hits = await self._over_fetch(query_vector, k_raw, k_final, soft_filter)
        selected = rerank(hits, k_final=k_final, boosts=boosts)
        self.logging.debug(
            "Search: %d candidates, %d selected (k_raw=%d, k_final=%d, max_per_doc=%d).",
            len(hits), len(selected), k_raw, k_final, boosts.max_per_doc,
        )
        return selected

    async def _over_fetch(
        self,
        query_vector: list[float],
        k_raw: int,
        k_final: int,
        soft_filter: Classification | None,
    ) -> list[SearchHit]:
        threshold = self.config.score_threshold
        if soft_filter is None or soft_filter.is_empty():
            return await self._rag_client.do_search(query_vector, k_raw, threshold)

        hits = await self._rag_client.do_search(query_vector, k_raw, threshold, soft_filter)
        if len(hits) >= k_final:
            return hits

        self.logging.debug("Soft filter left %d hits, topping up with an unfiltered search.", len(hits))
        seen = {hit.id for hit in hits}
        for hit in await self._rag_client.do_search(query_vector, k_raw, threshold):
            if hit.id not in seen:
                seen.add(hit.id)
                hits.append(hit)
        return hits
