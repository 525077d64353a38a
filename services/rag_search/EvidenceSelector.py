"""Sentence-level evidence selection by embedding similarity."""

import asyncio

import numpy as np

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperSentences import SentenceSpan, split_to_sentences, window_around
from shared.models.search import Context, Evidence

MAX_EVIDENCE = 8
PREVIEW_PAD = 280


def cosine_similarity(a: list[float], b: list[float]) -> float:
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    if va.shape != vb.shape:
        raise ValueError(f"Vector shapes differ: {va.shape} vs {vb.shape}")
    return float(va.dot(vb) / (np.linalg.norm(va) * np.linalg.norm(vb) + 1e-9))


class EvidenceSelector:
    """Picks the sentences of the top contexts that are closest to the question."""

    def __init__(self, helper_config: HelperConfig, embed_client: EmbedClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._embed_client = embed_client

    async def do_select_evidence(
        self,
        query_vector: list[float],
        contexts: list[Context],
        max_per_doc: int = 2,
        limit_docs: int = 6,
        pad: int = PREVIEW_PAD,
    ) -> list[Evidence]:
        """Select highlight sentences from the first ``limit_docs`` contexts.

        Sentence embeddings for different contexts are requested concurrently.
        Within a context the ``max_per_doc`` most similar sentences are kept;
        the overall result is capped at 8, favouring earlier contexts.

        Args:
            query_vector (list[float]): Embedded question.
            contexts (list[Context]): Contexts in retrieval order.
            max_per_doc (int): Sentences kept per context.
            limit_docs (int): Contexts considered.
            pad (int): Characters of padding on each side of the preview.

        Returns:
            list[Evidence]: At most 8 evidences.
        """
        selected = contexts[:limit_docs]
        spans_per_context = [split_to_sentences(ctx.text) for ctx in selected]
        vectors_per_context = await asyncio.gather(
            *[self._embed_spans(spans) for spans in spans_per_context]
        )

        evidences: list[Evidence] = []
        for ctx, spans, vectors in zip(selected, spans_per_context, vectors_per_context):
            scored = [(span, cosine_similarity(query_vector, vec)) for span, vec in zip(spans, vectors)]
            scored.sort(key=lambda pair: pair[1], reverse=True)
            for span, sim in scored[:max_per_doc]:
                window = window_around(ctx.text, span.start, span.end, pad=pad)
                evidences.append(
                    Evidence(
                        **ctx.model_dump(),
                        sent_text=span.text,
                        abs_start=span.start,
                        abs_end=span.end,
                        preview=window.preview,
                        rel_start=window.rel_start,
                        rel_end=window.rel_end,
                        similarity=sim,
                    )
                )
        return evidences[:MAX_EVIDENCE]

    async def _embed_spans(self, spans: list[SentenceSpan]) -> list[list[float]]:
        if not spans:
            return []
        return await self._embed_client.do_embed([span.text for span in spans])
