"""Cruxboard - multi-agent debate engine with blackboard, Dung semantics and crux rooms."""

__version__ = "0.1.0"
