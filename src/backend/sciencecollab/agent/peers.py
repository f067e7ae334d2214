"""
Peer interaction — how an agent reacts to other agents' findings.

  - PeerFindingLog: the session's shared, append-only list of findings
  - PeerAnalyzer: content-aware challenge decision from a per-domain trigger table
  - AgreementPolicy: the random roll for a lightweight agreement when no
    challenge fires (probability and seed are explicit and configurable)
"""
from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from sciencecollab.config import settings
from sciencecollab.models.schemas import Finding, PeerAnalysis, ToolResult

logger = logging.getLogger(__name__)

LABEL_KEYS = ("name", "title", "symbol", "iupac")


def item_label(item: Dict) -> str:
    """Most human-readable identifier of a result item, or ''."""
    for key in LABEL_KEYS:
        value = item.get(key)
        if value:
            return str(value)
    return ""


# ──────────────────────────────────────────────
# Shared finding log
# ──────────────────────────────────────────────

class PeerFindingLog:
    """
    Append-only findings shared by every agent in a session.

    Appends are serialized by a lock; reads take a lock-free snapshot. An
    agent snapshots once, when it starts reacting to peers, so findings
    appended later by slower peers are not seen by it.
    """

    def __init__(self):
        self._findings: List[Finding] = []
        self._lock = asyncio.Lock()

    async def append(self, finding: Finding) -> None:
        async with self._lock:
            self._findings.append(finding)

    def snapshot(self) -> Tuple[Finding, ...]:
        return tuple(self._findings)

    def __len__(self) -> int:
        return len(self._findings)

    def __iter__(self) -> Iterator[Finding]:
        return iter(self.snapshot())


# ──────────────────────────────────────────────
# Challenge analysis
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class CrossDomainTrigger:
    patterns: Tuple[str, ...]
    lens: str


# What terms in a peer's finding signal that this domain should weigh in
CROSS_DOMAIN_TRIGGERS: Dict[str, CrossDomainTrigger] = {
    "biology": CrossDomainTrigger(
        patterns=("compound", "smiles", "drug", "inhibitor", "agonist", "molecular weight",
                  "dalton", "nanomolar", "ic50", "ki value"),
        lens="protein-level mechanism and target engagement context",
    ),
    "chemistry": CrossDomainTrigger(
        patterns=("protein", "gene expression", "transcription factor", "pathway activation",
                  "mrna", "signaling cascade", "receptor binding"),
        lens="compound selectivity and chemical space context",
    ),
    "computational": CrossDomainTrigger(
        patterns=("clinical trial", "patient cohort", "in vivo", "animal model",
                  "efficacy endpoint", "adverse event"),
        lens="computational models require empirical validation before clinical translation",
    ),
    "clinical": CrossDomainTrigger(
        patterns=("predicted", "in silico", "model suggests", "simulation", "computational",
                  "docking score", "affinity prediction"),
        lens="computational predictions should be cross-referenced with observed clinical outcomes",
    ),
    "literature": CrossDomainTrigger(
        patterns=("novel", "unprecedented", "first report", "unique mechanism", "previously unknown"),
        lens="systematic literature synthesis provides prior context for this claim",
    ),
}


class PeerAnalyzer:
    """Decides whether a domain should challenge a peer's finding. Pure."""

    def __init__(self, triggers: Optional[Dict[str, CrossDomainTrigger]] = None):
        self.triggers = CROSS_DOMAIN_TRIGGERS if triggers is None else triggers

    def evaluate(self, my_domain: str, my_results: Sequence[ToolResult], peer_text: str) -> PeerAnalysis:
        trigger = self.triggers.get(my_domain)
        if trigger is None:
            return PeerAnalysis()

        text = peer_text.lower()
        if not any(p in text for p in trigger.patterns):
            return PeerAnalysis()

        evidence = []
        for result in my_results:
            if not result.ok:
                continue
            label = item_label(result.items[0])
            evidence.append(f'{result.tool} (e.g. "{label[:40]}")' if label else result.tool)
            if len(evidence) == 2:
                break

        if evidence:
            reason = (
                f"From a {my_domain} perspective, {trigger.lens}. "
                f"Our {' + '.join(evidence)} data provide complementary evidence that should be integrated."
            )
        else:
            reason = f"From a {my_domain} perspective, {trigger.lens} warrants additional investigation."
        return PeerAnalysis(should_challenge=True, justification=reason)


# ──────────────────────────────────────────────
# Agreement
# ──────────────────────────────────────────────

class AgreementPolicy:
    """
    Random roll for agreeing with a peer when no challenge fires.

    Pass a seeded ``random.Random`` (or set ``agreement_seed``) for
    reproducible sessions; probability 0 or 1 makes the policy deterministic.
    """

    def __init__(self, probability: Optional[float] = None, rng: Optional[random.Random] = None):
        self.probability = settings.agreement_probability if probability is None else probability
        self.rng = rng or random.Random(settings.agreement_seed)

    def should_agree(self) -> bool:
        return self.rng.random() < self.probability

    @staticmethod
    def note(my_domain: str, my_results: Sequence[ToolResult]) -> str:
        shared_terms = [
            item_label(item)
            for result in my_results
            if result.ok
            for item in result.items[:2]
            if item_label(item)
        ][:2]
        if shared_terms:
            quoted = ", ".join(f'"{term[:30]}"' for term in shared_terms)
            return f"Our {my_domain} data (including {quoted}) corroborates this finding."
        return f"Consistent with our {my_domain} analysis."
