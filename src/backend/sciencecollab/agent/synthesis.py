"""
Finding synthesis — turn an agent's tool results into its final finding.

The reasoning model writes a short scientific finding when it is available;
otherwise a rule-based template lists what each tool returned together with
a domain-specific mechanism hint. The synthesizer never raises.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from sciencecollab.agent.peers import item_label
from sciencecollab.config import settings
from sciencecollab.models.schemas import ToolResult
from sciencecollab.services.reasoning import ReasoningService

logger = logging.getLogger(__name__)

SYNTHESIS_MAX_TOKENS = 280

LLM_CONFIDENCE = 0.75
RULE_CONFIDENCE = 0.6
NO_EVIDENCE_CONFIDENCE = 0.2

SYNTHESIS_PROMPT = """You are {agent}, a {domain} researcher investigating "{topic}".

Tool results:
{summaries}

Write a concise scientific finding (2-4 sentences, specific and quantitative where possible). \
Focus on mechanistic insights, key data points, and actionable conclusions. Include specific \
identifiers (gene names, compound IDs, pathway names) where found. Avoid vague generalities."""

MECHANISM_HINTS = {
    "biology": "with structural and functional implications for protein biology and disease mechanisms",
    "chemistry": "revealing pharmacological profiles, drug-target interactions, and structure-activity relationships",
    "computational": "demonstrating computational models, predictive frameworks, and structural insights",
    "clinical": "providing clinical evidence for therapeutic applications, safety profiles, and regulatory status",
    "literature": "establishing cross-database literature consensus with citation-weighted evidence",
}


@dataclass(frozen=True)
class SynthesisOutcome:
    text: str
    confidence: float


class ReasoningSynthesis:
    """Model-written finding; None on any failure."""

    def __init__(self, service: ReasoningService, timeout: Optional[float] = None):
        self.service = service
        self.timeout = timeout or settings.synthesis_timeout_seconds

    async def write(self, agent: str, domain: str, topic: str, results: Sequence[ToolResult]) -> Optional[str]:
        summaries = "\n".join(f"{r.tool}: {r.summary}" for r in results if r.ok)
        if not summaries or not self.service.available:
            return None

        prompt = SYNTHESIS_PROMPT.format(agent=agent, domain=domain, topic=topic, summaries=summaries)
        return await self.service.generate(prompt, max_tokens=SYNTHESIS_MAX_TOKENS, timeout=self.timeout)


class RuleBasedSynthesis:
    """Deterministic template finding."""

    def write(self, agent: str, domain: str, topic: str, results: Sequence[ToolResult]) -> str:
        successful = [r for r in results if r.ok]
        if not successful:
            return (
                f'[{domain.upper()}] Investigation of "{topic}" via {domain} tools yielded limited results. '
                f"Further investigation with specialized databases may reveal relevant {domain} connections."
            )

        highlights = []
        for r in successful:
            name = item_label(r.items[0])
            detail = f': "{name[:60]}"' if name else ""
            highlights.append(f"{r.tool} ({len(r.items)} results{detail})")

        hint = MECHANISM_HINTS.get(domain, "yielding multi-source insights")
        if len(successful) > 1:
            spread = f"across {len(successful)} independent data sources"
        else:
            spread = "from primary literature"
        return (
            f'[{domain.upper()}] Investigated "{topic}" using {", ".join(highlights)}, {hint}. '
            f"Cross-database analysis reveals convergent evidence {spread}."
        )


class FindingSynthesizer:
    """
    Usage:
        synthesizer = FindingSynthesizer(ReasoningService())
        outcome = await synthesizer.synthesize("AgentBio", "biology", topic, results)
    """

    def __init__(self, service: Optional[ReasoningService] = None):
        self.primary = ReasoningSynthesis(service or ReasoningService())
        self.fallback = RuleBasedSynthesis()

    async def synthesize(
        self, agent: str, domain: str, topic: str, results: Sequence[ToolResult]
    ) -> SynthesisOutcome:
        text = await self.primary.write(agent, domain, topic, results)
        if text:
            return SynthesisOutcome(text=text, confidence=LLM_CONFIDENCE)

        logger.debug(f"[{agent}] using rule-based synthesis")
        confidence = RULE_CONFIDENCE if any(r.ok for r in results) else NO_EVIDENCE_CONFIDENCE
        return SynthesisOutcome(
            text=self.fallback.write(agent, domain, topic, results),
            confidence=confidence,
        )
