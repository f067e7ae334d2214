"""
Agent domain definitions and collaboration modes.

Each domain has a pool of 5-7 candidate tools in preference order; the tool
selector picks the best three per topic.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from sciencecollab.models.schemas import AgentDomainConfig, CollabMode

MAX_AGENTS = 5


BIOLOGY = AgentDomainConfig(
    suffix="Bio",
    domain="biology",
    focus="protein structure, gene function, molecular biology, disease mechanisms, protein interactions",
    tool_pool=("uniprot", "pdb", "ncbi_gene", "string", "reactome", "europepmc", "kegg"),
    default_tools=("uniprot", "pdb", "europepmc"),
)

CHEMISTRY = AgentDomainConfig(
    suffix="Chem",
    domain="chemistry",
    focus="drug discovery, compound properties, medicinal chemistry, ADMET, pharmacology, drug-target interactions",
    tool_pool=("chembl", "pubchem", "openfda", "opentargets", "kegg", "europepmc"),
    default_tools=("chembl", "pubchem", "openfda"),
)

COMPUTATIONAL = AgentDomainConfig(
    suffix="Comp",
    domain="computational",
    focus="bioinformatics, computational biology, machine learning, structure prediction, algorithms",
    tool_pool=("arxiv", "semanticscholar", "pdb", "crossref", "uniprot", "ncbi_gene"),
    default_tools=("arxiv", "crossref", "pdb"),
)

CLINICAL = AgentDomainConfig(
    suffix="Clin",
    domain="clinical",
    focus="clinical trials, drug safety, therapeutic outcomes, patient populations, regulatory data",
    tool_pool=("clinicaltrials", "openfda", "europepmc", "opentargets", "pubmed"),
    default_tools=("clinicaltrials", "openfda", "europepmc"),
)

LITERATURE = AgentDomainConfig(
    suffix="Lit",
    domain="literature",
    focus="systematic review, citation analysis, meta-analysis, cross-database evidence synthesis",
    tool_pool=("pubmed", "semanticscholar", "crossref", "europepmc", "arxiv"),
    default_tools=("pubmed", "crossref", "europepmc"),
)

AGENT_DOMAINS: Tuple[AgentDomainConfig, ...] = (BIOLOGY, CHEMISTRY, COMPUTATIONAL, CLINICAL, LITERATURE)


@dataclass(frozen=True)
class ModeSpec:
    label: str
    description: str
    domains: Tuple[AgentDomainConfig, ...]


COLLAB_MODES: Dict[CollabMode, ModeSpec] = {
    CollabMode.BROAD: ModeSpec(
        label="Broad Scan",
        description="5 agents across all scientific domains",
        domains=AGENT_DOMAINS,
    ),
    CollabMode.DRUG_DISCOVERY: ModeSpec(
        label="Drug Discovery",
        description="Chemistry + Clinical + Biology: target ID, compound profiles, trial data",
        domains=(CHEMISTRY, CLINICAL, BIOLOGY),
    ),
    CollabMode.STRUCTURE: ModeSpec(
        label="Structure Focus",
        description="Biology + Computational: PDB structures, UniProt, ML preprints",
        domains=(BIOLOGY, COMPUTATIONAL),
    ),
    CollabMode.LITERATURE: ModeSpec(
        label="Literature Review",
        description="Literature + Biology + Computational: cross-database citation synthesis",
        domains=(LITERATURE, BIOLOGY, COMPUTATIONAL),
    ),
}


def resolve_mode(value: Optional[str]) -> CollabMode:
    """Parse a mode name; anything unrecognized falls back to broad."""
    try:
        return CollabMode(value)
    except ValueError:
        return CollabMode.BROAD


def domains_for(mode: CollabMode, agents: Optional[int] = None) -> List[AgentDomainConfig]:
    """
    Participating domains for a session.

    A positive ``agents`` override takes the first N domains (clamped to
    1..MAX_AGENTS) regardless of mode.
    """
    if agents is not None and agents > 0:
        return list(AGENT_DOMAINS[: max(1, min(MAX_AGENTS, agents))])
    return list(COLLAB_MODES[mode].domains)
