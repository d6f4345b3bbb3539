# debate_transcripts/pipeline/reconcile.py
"""
Transcript reconciliation.

Responsibility:
- Merge two independently obtained transcripts of the same debate into one
- Primary transcript is authoritative for wording and layout
- AI call isolated, prompt versioned, output validated

Two implementations of the Reconciler protocol:
- OpenAIReconciler: chat completion with a versioned merge prompt
- SequenceMatcherReconciler: deterministic difflib word alignment, no network
"""

from __future__ import annotations

import json
import re
from difflib import SequenceMatcher
from typing import Optional, Protocol, Tuple

from openai import AsyncOpenAI
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from debate_transcripts.config import AcquisitionConfig


class Reconciler(Protocol):
    async def reconcile(self, primary: str, secondary: str) -> str:
        """Return the merged transcript. Raise on any failure."""
        ...

    async def aclose(self) -> None:
        ...


# Versioned prompt; change only together with RECONCILE_PROMPT_VERSION
RECONCILE_PROMPT_VERSION = "2"
RECONCILE_PROMPT = """
You reconcile two transcripts of the same recorded debate into one canonical transcript.

PRIMARY transcript (authoritative for wording, speaker labels and layout):
{primary}

SECONDARY transcript (independent source, use it to correct the primary):
{secondary}

Rules:
- Keep the primary's structure, paragraphing and speaker labels
- Where the two disagree, prefer the reading that fixes a clear transcription
  error (misheard word, missing punctuation, wrong capitalisation)
- Do not summarise, shorten, paraphrase or add commentary
- Produce one continuous transcript

Respond with valid JSON only, matching this schema exactly:
{{"merged_transcript": string}}
""".strip()


class ReconciliationResponse(BaseModel):
    """Strict response model for the merge prompt."""
    merged_transcript: str

    model_config = ConfigDict(extra="forbid")

    @field_validator("merged_transcript")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("merged transcript is empty")
        return value.strip()


class OpenAIReconciler:
    def __init__(self, config: AcquisitionConfig, client: Optional[AsyncOpenAI] = None) -> None:
        self._config = config
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            api_key = self._config.secret("openai_api_key")
            if not api_key:
                raise RuntimeError("OPENAI_API_KEY is not configured; cannot reconcile")
            self._client = AsyncOpenAI(
                api_key=api_key,
                timeout=self._config.timeouts.reconciliation,
                max_retries=0,
            )
        return self._client

    async def reconcile(self, primary: str, secondary: str) -> str:
        client = self._get_client()
        response = await client.chat.completions.create(
            model=self._config.openai_reconcile_model,
            messages=[{"role": "user", "content": RECONCILE_PROMPT.format(primary=primary, secondary=secondary)}],
            temperature=0.0,
            response_format={"type": "json_object"},
        )
        raw = (response.choices[0].message.content or "").strip()
        try:
            parsed = ReconciliationResponse.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise ValueError(f"malformed reconciliation response: {exc}") from exc
        return parsed.merged_transcript

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.close()


_TOKEN = re.compile(r"\S+|\s+")
_AFFIX = re.compile(r"^(\W*)(.*?)(\W*)$", re.DOTALL)


def _normalize(word: str) -> str:
    return re.sub(r"[^\w']", "", word.lower())


def _split_affixes(word: str) -> Tuple[str, str, str]:
    match = _AFFIX.match(word)
    return match.group(1), match.group(2), match.group(3)


def _merge_word(primary: str, secondary: str) -> str:
    p_lead, p_core, p_trail = _split_affixes(primary)
    s_lead, s_core, s_trail = _split_affixes(secondary)
    core = s_core if p_core.islower() and not s_core.islower() else p_core
    return f"{p_lead or s_lead}{core}{p_trail or s_trail}"


class SequenceMatcherReconciler:
    """
    Align the two transcripts word by word.

    Where the normalized words match, the primary word keeps its spelling and
    picks up punctuation and capitalisation from the secondary if it has none.
    Everything else, including whitespace and line breaks, comes from the primary.
    """

    async def reconcile(self, primary: str, secondary: str) -> str:
        parts = _TOKEN.findall(primary)
        word_positions = [i for i, part in enumerate(parts) if not part.isspace()]
        primary_words = [parts[i] for i in word_positions]
        secondary_words = secondary.split()

        matcher = SequenceMatcher(
            None,
            [_normalize(word) for word in primary_words],
            [_normalize(word) for word in secondary_words],
            autojunk=False,
        )
        for block in matcher.get_matching_blocks():
            for offset in range(block.size):
                position = word_positions[block.a + offset]
                parts[position] = _merge_word(primary_words[block.a + offset], secondary_words[block.b + offset])

        merged = "".join(parts).strip()
        if not merged:
            raise ValueError("nothing to reconcile")
        return merged

    async def aclose(self) -> None:
        return None


def _word_set(text: str) -> set:
    return {word for word in (_normalize(token) for token in text.split()) if word}


def jaccard_similarity(a: str, b: str) -> float:
    """Word-set Jaccard index, case and punctuation insensitive. Two empty texts score 1.0."""
    words_a, words_b = _word_set(a), _word_set(b)
    union = words_a | words_b
    if not union:
        return 1.0
    return round(len(words_a & words_b) / len(union), 4)


def build_reconciler(config: AcquisitionConfig) -> Reconciler:
    """
    Pick the reconciler named by config.reconciler.

    Without an OpenAI key the deterministic reconciler is used instead.
    """
    if config.reconciler == "openai" and config.secret("openai_api_key"):
        return OpenAIReconciler(config)
    return SequenceMatcherReconciler()



# High-Level Intent
# reconcile.py isolates the only AI call in the verification path.
# The cross verifier treats any exception from reconcile() as a degraded
# outcome, so implementations raise freely and never return blank text.

# Edge Cases
# "Hello world." vs "Hello, world!" → "Hello, world." (primary's full stop kept)
# Model returns prose instead of JSON → ValueError → unverified primary
# reconciler="openai" without a key → SequenceMatcherReconciler
