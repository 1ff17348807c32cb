"""
Canonical Prompt Generation
===========================

Pure functions for rendering the core truth prompt.

INVARIANT: Same request -> same prompt_hash
No runtime state, no clock, no randomness.
"""

from __future__ import annotations
from dataclasses import dataclass
import hashlib
import json

from .contracts import CoreTruthRequest

TASK_CORE_TRUTH = "core_truth"

# JSON schema the service must answer with.
CORE_TRUTH_SCHEMA = {
    "type": "object",
    "properties": {
        "coreTruth": {"type": "string"},
    },
    "required": ["coreTruth"],
    "additionalProperties": False,
}

SYSTEM_PROMPT = (
    "You are an organisational diagnostician. You write one plain sentence that "
    "names the causal chain behind an organisation's current condition."
)


@dataclass(frozen=True)
class CanonicalPrompt:
    """
    Frozen prompt with hash for deterministic tracking.

    INVARIANT: Same task_type + request -> same prompt_hash
    """
    task_type: str
    request_hash: str
    system_text: str
    prompt_text: str
    prompt_hash: str

    @staticmethod
    def create(request: CoreTruthRequest, task_type: str = TASK_CORE_TRUTH) -> CanonicalPrompt:
        """
        Factory method for creating canonical prompts.

        This is the ONLY way to create prompts.
        """
        if task_type != TASK_CORE_TRUTH:
            raise ValueError(f"Unknown task type: {task_type}")
        prompt_text = _core_truth_prompt(request)
        prompt_hash = hashlib.sha256(f"{SYSTEM_PROMPT}\n{prompt_text}".encode()).hexdigest()
        return CanonicalPrompt(
            task_type=task_type,
            request_hash=request.content_hash(),
            system_text=SYSTEM_PROMPT,
            prompt_text=prompt_text,
            prompt_hash=prompt_hash,
        )


def _core_truth_prompt(request: CoreTruthRequest) -> str:
    drivers = json.dumps([d.to_dict() for d in request.drivers], indent=2, sort_keys=True, ensure_ascii=False)
    quotes = "\n".join(f"- \"{q}\"" for q in request.evidence_quotes) or "- (none)"

    return f"""TASK: Core Truth

RANKED DRIVERS (most central first):
{drivers}

PARTICIPANT EVIDENCE:
{quotes}

INSTRUCTIONS:
Write exactly ONE sentence of 16 to 28 words that states what is driving the
organisation's current condition.
The sentence MUST contain an explicit causal connective such as
"because", "driven by", "which causes", "leading to" or "so that".
Use the language of the drivers and evidence. Do not invent facts.
No bullet points, no lists, no quotation marks.
Do NOT mention drivers, nodes, graphs, data, participants or this analysis.

OUTPUT FORMAT (JSON):
{{
  "coreTruth": "<one sentence>"
}}"""
