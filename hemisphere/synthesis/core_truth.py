"""
Core Truth Synthesizer
======================

Turns the top-ranked drivers into one causal sentence.

The narrative service is asked first. Its outcome is a Result: success
carries the sanitized sentence, failure carries an Error with the reason.
On failure a deterministic template is used, so synthesis never stalls
the build and never raises.

ACCEPTANCE MODES:
- permissive: any non-empty sanitized sentence is accepted
- strict:     16-28 words, an explicit causal connective, no meta references
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
import logging
import re

from narrative import (
    CoreTruthExecutor,
    CoreTruthRequest,
    DriverDescriptor,
    NarrativeErrorCode,
    NarrativeOutcome,
)

from hemisphere.contracts.base import Error, ErrorCode, Result
from hemisphere.core.centrality import RankedNode

logger = logging.getLogger(__name__)

MODE_PERMISSIVE = "permissive"
MODE_STRICT = "strict"
MODES = (MODE_PERMISSIVE, MODE_STRICT)

STRICT_MIN_WORDS = 16
STRICT_MAX_WORDS = 28

CAUSAL_CONNECTIVES = (
    "because", "driven by", "driving", "drives", "causes", "caused by", "causing",
    "leads to", "leading to", "results in", "resulting in", "so that", "therefore",
    "which means", "due to", "as a result",
)
META_REFERENCES = ("driver", "node", "graph", "this analysis", "the data", "participants")

GENERIC_SENTENCE = (
    "Insufficient participant insight is available to identify the forces "
    "driving the organisation's current condition."
)
SOURCE_NARRATIVE = "narrative"
SOURCE_FALLBACK = "fallback"

NARRATIVE_ERROR_MAP = {
    NarrativeErrorCode.DISABLED: ErrorCode.NARRATIVE_DISABLED,
    NarrativeErrorCode.TIMEOUT: ErrorCode.NARRATIVE_TIMEOUT,
    NarrativeErrorCode.UNREACHABLE: ErrorCode.NARRATIVE_UNREACHABLE,
    NarrativeErrorCode.INVALID_OUTPUT: ErrorCode.NARRATIVE_INVALID_OUTPUT,
    NarrativeErrorCode.EMPTY_OUTPUT: ErrorCode.NARRATIVE_EMPTY_OUTPUT,
    NarrativeErrorCode.CONTRACT_VIOLATION: ErrorCode.NARRATIVE_CONTRACT_VIOLATION,
}

_FENCE_RE = re.compile(r"```[a-zA-Z]*")
_BULLET_RE = re.compile(r"^\s*(?:[-*•]+|\d+[.)])\s*")
_QUOTES = "\"'“”‘’`"


@dataclass(frozen=True)
class CoreTruth:
    """The chosen sentence and where it came from."""
    sentence: str
    source: str
    error: Optional[Error] = None
    prompt_hash: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.source == SOURCE_FALLBACK


# =============================================================================
# PURE HELPERS
# =============================================================================

def sanitize(text: str) -> str:
    """Strip fences, bullets and wrapping quotes; collapse whitespace."""
    cleaned = _FENCE_RE.sub(" ", text)
    lines = [_BULLET_RE.sub("", line) for line in cleaned.splitlines()]
    cleaned = " ".join(" ".join(lines).split())
    cleaned = cleaned.strip(_QUOTES).strip()
    return cleaned


def contract_problems(sentence: str) -> List[str]:
    """What a sentence violates under strict acceptance. Empty means compliant."""
    problems = []
    words = len(sentence.split())
    if not STRICT_MIN_WORDS <= words <= STRICT_MAX_WORDS:
        problems.append(f"{words} words, expected {STRICT_MIN_WORDS}-{STRICT_MAX_WORDS}")
    lowered = sentence.lower()
    if not any(c in lowered for c in CAUSAL_CONNECTIVES):
        problems.append("no causal connective")
    meta = [m for m in META_REFERENCES if re.search(rf"\b{re.escape(m)}s?\b", lowered)]
    if meta:
        problems.append(f"meta reference: {', '.join(meta)}")
    return problems


def fallback_sentence(labels: Sequence[str]) -> str:
    """Deterministic template over the first three labels."""
    picked = [label.strip() for label in labels if label and label.strip()][:3]
    if len(picked) >= 3:
        return f"{picked[0]} is driving {picked[1]}, amplifying {picked[2]}."
    if len(picked) == 2:
        return f"{picked[0]} is driving {picked[1]}."
    if len(picked) == 1:
        return f"{picked[0]} is driving the organisation's current condition."
    return GENERIC_SENTENCE


def fallback_labels(drivers: Sequence[RankedNode], central: Sequence[RankedNode]) -> List[str]:
    """Driver labels first, then central labels not already used."""
    labels: List[str] = []
    for ranked in list(drivers) + list(central):
        if ranked.node.label not in labels:
            labels.append(ranked.node.label)
    return labels


def describe(ranked: RankedNode) -> DriverDescriptor:
    node = ranked.node
    return DriverDescriptor(
        type=node.type.value,
        label=node.label,
        summary=node.summary,
        weight=node.weight,
        severity=node.severity,
        cross_domain=ranked.cross_domain,
        centrality=ranked.score,
    )


# =============================================================================
# SYNTHESIZER
# =============================================================================

class CoreTruthSynthesizer:
    """
    Args:
        executor: Narrative executor, or None when the service is disabled
        mode: 'permissive' (default) or 'strict'
    """

    def __init__(self, executor: Optional[CoreTruthExecutor] = None, mode: str = MODE_PERMISSIVE):
        if mode not in MODES:
            raise ValueError(f"Unknown core truth mode: {mode}")
        self._executor = executor
        self._mode = mode

    @property
    def mode(self) -> str:
        return self._mode

    def synthesize(
        self,
        drivers: Sequence[RankedNode],
        evidence_quotes: Sequence[str],
        central: Sequence[RankedNode] = (),
    ) -> CoreTruth:
        request = CoreTruthRequest.create(
            drivers=[describe(r) for r in drivers],
            evidence_quotes=evidence_quotes,
        )
        result, prompt_hash = self._ask(request)
        if result.is_success:
            return CoreTruth(sentence=result.value, source=SOURCE_NARRATIVE, prompt_hash=prompt_hash)

        level = logging.INFO if result.error.code == ErrorCode.NARRATIVE_DISABLED else logging.WARNING
        logger.log(level, "Core truth fallback (%s): %s", result.error.code.name, result.error.message)
        return CoreTruth(
            sentence=fallback_sentence(fallback_labels(drivers, central)),
            source=SOURCE_FALLBACK,
            error=result.error,
            prompt_hash=prompt_hash,
        )

    def request_sentence(self, request: CoreTruthRequest) -> Result:
        """Ask the service; Result.success(sentence) or Result.failure(Error)."""
        return self._ask(request)[0]

    def _ask(self, request: CoreTruthRequest) -> Tuple[Result, Optional[str]]:
        if self._executor is None:
            return Result.failure(Error.create(ErrorCode.NARRATIVE_DISABLED, "Narrative service disabled")), None

        try:
            outcome = self._executor.execute(request)
        except Exception as e:
            logger.exception("Narrative executor raised")
            return Result.failure(Error.create(ErrorCode.NARRATIVE_UNREACHABLE, str(e))), None

        return self._accept(outcome), outcome.prompt_hash

    def _accept(self, outcome: NarrativeOutcome) -> Result:
        if not outcome.success:
            code = NARRATIVE_ERROR_MAP.get(outcome.error_code, ErrorCode.NARRATIVE_UNREACHABLE)
            return Result.failure(Error.create(code, outcome.error_message or "Narrative service failed"))

        sentence = sanitize(outcome.sentence)
        if not sentence:
            return Result.failure(Error.create(ErrorCode.NARRATIVE_EMPTY_OUTPUT, "Sentence empty after sanitizing"))

        if self._mode == MODE_STRICT:
            problems = contract_problems(sentence)
            if problems:
                error = Error.create(ErrorCode.NARRATIVE_CONTRACT_VIOLATION, "; ".join(problems))
                return Result.failure(error.with_context("sentence", sentence))

        return Result.success(sentence)
