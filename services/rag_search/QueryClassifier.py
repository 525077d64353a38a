"""Query classification into advisory format/phase tags."""

import json
import re

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.errors import ProviderError
from shared.helper.HelperConfig import HelperConfig
from shared.models.search import Classification

MAX_TAGS = 5

CLASSIFY_SYSTEM_PROMPT = """Categorise the poker rules question as compact JSON:
{"format": ["amateur"|"dealer"|"cash"|"mtt"|"sng"|"home"...?],
 "phase": ["deal"|"preflop"|"postflop"|"showdown"|"penalties"...?]}
Answer ONLY with this JSON, no comment. If unsure, use empty lists."""

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def _clean_tags(value) -> list[str]:
    if not isinstance(value, list):
        return []
    tags: list[str] = []
    for item in value:
        if isinstance(item, str) and item.strip():
            tag = item.strip().lower()
            if tag not in tags:
                tags.append(tag)
    return tags[:MAX_TAGS]


def parse_classification(raw_text: str) -> Classification:
    """Parse the model reply into a Classification.

    Anything that is not a JSON object degrades to empty tags.
    """
    text = _FENCE.sub("", (raw_text or "").strip()) or "{}"
    try:
        obj = json.loads(text)
    except json.JSONDecodeError:
        return Classification()
    if not isinstance(obj, dict):
        return Classification()
    return Classification(format=_clean_tags(obj.get("format")), phase=_clean_tags(obj.get("phase")))


class QueryClassifier:
    """Asks the chat provider for soft tags. Never fails the retrieval."""

    def __init__(self, helper_config: HelperConfig, llm_client: LLMClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._llm_client = llm_client

    async def do_classify(self, question: str) -> Classification:
        """Classify a question.

        Provider failures and unparsable replies are logged and return empty tags.
        """
        messages = [
            {"role": "system", "content": CLASSIFY_SYSTEM_PROMPT},
            {"role": "user", "content": question},
        ]
        try:
            completion = await self._llm_client.do_chat(messages, temperature=0)
        except ProviderError as exc:
            self.logging.warning("Classification unavailable, continuing without tags: %s", exc)
            return Classification()

        classified = parse_classification(completion.text)
        if classified.is_empty() and completion.text.strip() not in ("", "{}"):
            self.logging.debug("Classification reply yielded no tags: %r", completion.text[:200])
        return classified
