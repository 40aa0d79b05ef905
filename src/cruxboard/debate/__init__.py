"""Cruxboard Debate Orchestration.

Event-producing drivers for the four debate modes plus the shared state
machinery they fold into.

Modules:
- orchestrator: runner base class, driver factory and `run_debate`
- blitz / classical / graph_debate / dialogue: the four drivers
- crux_room: LangGraph state machine for two-persona crux rooms
- blackboard, convergence, scheduler, disagreement: shared state and policies
- replay: fold an event stream back into the final state
"""

from cruxboard.debate.crux_room import CruxRoom, cards_to_output
from cruxboard.debate.orchestrator import DebateRunner, build_runner, run_debate
from cruxboard.debate.replay import ReplayState, replay_events

__all__ = [
    "CruxRoom",
    "DebateRunner",
    "ReplayState",
    "build_runner",
    "cards_to_output",
    "replay_events",
    "run_debate",
]
