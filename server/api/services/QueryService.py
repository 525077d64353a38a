"""Query service: retrieval, evidence and answer composition over the rule corpus.

retrieve: classify + embed the question → re-ranking search → contexts.
answer:   retrieve → numbered contexts and citation lines → chat provider.
ask:      streamed variant of answer that also emits sentence evidence and
          stops as soon as the consumer goes away.
"""

import asyncio
from typing import Any, AsyncIterator, Awaitable, Callable

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.llm.models.ChatCompletion import ChatCompletion
from shared.clients.rag.models.SearchHit import RescoredHit
from services.rag_search.EvidenceSelector import EvidenceSelector
from services.rag_search.QueryClassifier import QueryClassifier
from services.rag_search.SearchService import SearchService, infer_doc_boosts
from shared.helper.HelperConfig import HelperConfig
from shared.models.search import (
    AnswerMode,
    AnswerResponse,
    Classification,
    Context,
    DocBoostRule,
    RetrieveResponse,
    SearchBoosts,
)

STREAM_PART_CHARS = 600

ANSWER_SYSTEM_PROMPTS: dict[str, str] = {
    "beginner": """Strict rules:
- Do not invent anything.
- Answer in 4-8 lines of plain language.
- If several rulebooks are relevant, structure the answer per document and point out differences.
- Use the most recent version present in the contexts.
- End with 2-4 citations.""",
    "referee": """Strict rules (referee):
- Do not invent anything. Concise, structured answer.
- If several rulebooks are relevant, compare them briefly in separate sections per document.
- Always cite precisely (doc, section, pages, version) without mixing documents.""",
}


def hit_to_context(hit: RescoredHit) -> Context:
    p = hit.payload
    return Context(
        score=hit.adjusted_score,
        text=p.text,
        doc_id=p.doc_id,
        title=p.title,
        section=p.section,
        page_start=p.page_start,
        page_end=p.page_end,
        version=p.version,
        chunk_index=p.chunk_index,
    )


def format_citations(contexts: list[Context]) -> str:
    return "\n".join(
        f"[{i}] Doc: {c.doc_id}, §{c.section or '-'}, p.{c.page_start}–{c.page_end}, v.{c.version}"
        for i, c in enumerate(contexts, start=1)
    )


def build_answer_messages(question: str, mode: AnswerMode, classified: Classification, contexts: list[Context]) -> list[dict]:
    """Assemble the chat messages for answer composition."""
    context_text = "\n\n".join(f"[#{i}] ({c.doc_id}) {c.text}" for i, c in enumerate(contexts, start=1))
    user = (
        f"Question: {question}\n\n"
        f"Classification:\nformat={classified.format} phase={classified.phase}\n\n"
        f"CONTEXTS:\n{context_text}\n\n"
        f"Citations (use them at the end of the answer):\n{format_citations(contexts)}"
    )
    return [
        {"role": "system", "content": ANSWER_SYSTEM_PROMPTS[mode]},
        {"role": "user", "content": user},
    ]


class QueryService:
    """Orchestrates classification, retrieval, evidence selection and answer composition."""

    def __init__(
        self,
        helper_config: HelperConfig,
        embed_client: EmbedClientInterface,
        llm_client: LLMClientInterface,
        search_service: SearchService,
        classifier: QueryClassifier,
        evidence_selector: EvidenceSelector,
        doc_boost_rules: list[DocBoostRule] | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._embed = embed_client
        self._llm = llm_client
        self._search = search_service
        self._classifier = classifier
        self._evidence = evidence_selector
        self._doc_boost_rules = doc_boost_rules or []

    ##########################################
    ################ CORE ####################
    ##########################################

    async def do_retrieve(self, question: str, k: int | None = None) -> RetrieveResponse:
        """Retrieve ranked contexts for a question.

        Args:
            question (str): The natural-language question.
            k (int | None): Maximum number of contexts (default from search config).

        Returns:
            RetrieveResponse: Advisory classification and ordered contexts.
        """
        classified, contexts, _ = await self._retrieve(question, k)
        return RetrieveResponse(classified=classified, contexts=contexts)

    async def do_answer(self, question: str, mode: AnswerMode = "beginner", k: int | None = None) -> AnswerResponse:
        """Retrieve contexts and compose a cited answer.

        A blank question returns an empty answer without any provider call.

        Raises:
            ProviderError: If embedding, search or answer composition fails.
        """
        if not (question or "").strip():
            return AnswerResponse(text="", usage_tokens=0, classified=Classification(), contexts=[])
        classified, contexts, _ = await self._retrieve(question, k)
        completion = await self._compose(question, mode, classified, contexts)
        return AnswerResponse(
            text=completion.text,
            usage_tokens=completion.usage_tokens,
            classified=classified,
            contexts=contexts,
        )

    async def do_ask_stream(
        self,
        question: str,
        mode: AnswerMode = "beginner",
        k: int | None = None,
        is_disconnected: Callable[[], Awaitable[bool]] | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Stream evidence, answer parts and a final event.

        Yields dicts with "event" ("evidence", "answer", "done" or "error") and
        "data". Production stops as soon as ``is_disconnected`` reports True,
        and nothing follows the first "done" or "error" event.
        """
        async def gone() -> bool:
            return bool(is_disconnected and await is_disconnected())

        question = (question or "").strip()
        if not question:
            yield {"event": "error", "data": "Please ask a question."}
            return

        try:
            classified, contexts, query_vector = await self._retrieve(question, k)
            if await gone():
                self.logging.info("Client disconnected after retrieval, stopping.")
                return

            evidences = await self._evidence.do_select_evidence(query_vector, contexts)
            if await gone():
                return
            yield {"event": "evidence", "data": [e.model_dump() for e in evidences]}

            completion = await self._compose(question, mode, classified, contexts)
        except Exception as exc:
            self.logging.error("Ask stream failed for question %r: %s", question[:80], exc)
            yield {"event": "error", "data": str(exc)}
            return

        text = completion.text
        for start in range(0, max(len(text), 1), STREAM_PART_CHARS):
            if await gone():
                self.logging.info("Client disconnected during answer stream, stopping.")
                return
            yield {"event": "answer", "data": text[start:start + STREAM_PART_CHARS]}
        yield {"event": "done", "data": {"usage_tokens": completion.usage_tokens}}

    ##########################################
    ############### HELPERS ##################
    ##########################################

    async def _retrieve(self, question: str, k: int | None) -> tuple[Classification, list[Context], list[float]]:
        question = (question or "").strip()
        if not question:
            return Classification(), [], []

        k_final = k or self._search.config.k_final
        k_raw = max(self._search.config.k_raw, 2 * k_final)
        self.logging.info("Retrieving: question=%r k=%d", question[:80], k_final)

        classified, vectors = await asyncio.gather(
            self._classifier.do_classify(question),
            self._embed.do_embed([question]),
        )
        boosts = SearchBoosts(
            doc_boosts=infer_doc_boosts(question, self._doc_boost_rules),
            prefer_format=classified.format,
            prefer_phase=classified.phase,
            freshness=True,
            max_per_doc=self._search.config.max_per_doc,
        )
        hits = await self._search.do_search(
            vectors[0],
            k_raw=k_raw,
            k_final=k_final,
            soft_filter=classified,
            boosts=boosts,
        )
        contexts = [hit_to_context(hit) for hit in hits]
        self.logging.info("Retrieved %d contexts (format=%s phase=%s).", len(contexts), classified.format, classified.phase)
        return classified, contexts, vectors[0]

    async def _compose(
        self,
        question: str,
        mode: AnswerMode,
        classified: Classification,
        contexts: list[Context],
    ) -> ChatCompletion:
        completion = await self._llm.do_chat(
            build_answer_messages(question, mode, classified, contexts),
            temperature=0.2,
        )
        return ChatCompletion(text=completion.text.strip(), usage_tokens=completion.usage_tokens)
