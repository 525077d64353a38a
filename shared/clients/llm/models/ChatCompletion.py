"""ChatCompletion model and the decoder that normalises chat provider responses."""

from typing import Any

from pydantic import BaseModel


class ChatCompletion(BaseModel):
    """Assistant reply text plus the total tokens the provider billed for it."""

    text: str
    usage_tokens: int = 0


def _segments_to_text(content: Any) -> str | None:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for seg in content:
            if isinstance(seg, str):
                parts.append(seg)
            elif isinstance(seg, dict) and isinstance(seg.get("text"), str):
                parts.append(seg["text"])
        return "".join(parts)
    return None


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    return None


def decode_chat_completion(raw: dict) -> ChatCompletion:
    """Decode a raw chat response into a ChatCompletion.

    Text is taken from the first envelope that yields one:
      1. ``choices[0].message.content`` (OpenAI / Mistral; string or list of segments)
      2. ``message.content`` (Ollama /api/chat)
      3. ``response`` (Ollama /api/generate)

    Usage is taken from the first envelope that yields a number:
      1. ``usage.total_tokens``
      2. ``usage.prompt_tokens + usage.completion_tokens``
      3. ``prompt_eval_count + eval_count`` (Ollama)
      4. 0

    Args:
        raw (dict): The parsed JSON response body.

    Returns:
        ChatCompletion: The decoded reply.

    Raises:
        ValueError: If none of the known envelopes carries text.
    """
    text: str | None = None
    choices = raw.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        text = _segments_to_text((choices[0].get("message") or {}).get("content"))
    if text is None and isinstance(raw.get("message"), dict):
        text = _segments_to_text(raw["message"].get("content"))
    if text is None and isinstance(raw.get("response"), str):
        text = raw["response"]
    if text is None:
        raise ValueError(f"Chat response does not contain a reply. Response keys: {list(raw.keys())}")

    usage_tokens = 0
    usage = raw.get("usage") if isinstance(raw.get("usage"), dict) else {}
    total = _as_int(usage.get("total_tokens"))
    prompt, completion = _as_int(usage.get("prompt_tokens")), _as_int(usage.get("completion_tokens"))
    eval_prompt, eval_reply = _as_int(raw.get("prompt_eval_count")), _as_int(raw.get("eval_count"))
    if total is not None:
        usage_tokens = total
    elif prompt is not None or completion is not None:
        usage_tokens = (prompt or 0) + (completion or 0)
    elif eval_prompt is not None or eval_reply is not None:
        usage_tokens = (eval_prompt or 0) + (eval_reply or 0)

    return ChatCompletion(text=text, usage_tokens=usage_tokens)
