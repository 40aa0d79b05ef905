"""Dung argumentation semantics and crux extraction."""

from cruxboard.argumentation.crux_extractor import (
    extract_graph_output,
    map_to_debate_output,
    settling_question,
)
from cruxboard.argumentation.dung import (
    MAX_PREFERRED_CANDIDATES,
    DungFramework,
    build_framework,
    compute_grounded_extension,
    compute_labelling,
    compute_preferred_extensions,
)
from cruxboard.argumentation.graph_state import (
    add_arguments,
    add_attacks,
    create_graph_state,
    deduplicate_attacks,
    recompute_semantics,
)

__all__ = [
    "MAX_PREFERRED_CANDIDATES",
    "DungFramework",
    "add_arguments",
    "add_attacks",
    "build_framework",
    "compute_grounded_extension",
    "compute_labelling",
    "compute_preferred_extensions",
    "create_graph_state",
    "deduplicate_attacks",
    "extract_graph_output",
    "map_to_debate_output",
    "recompute_semantics",
    "settling_question",
]
