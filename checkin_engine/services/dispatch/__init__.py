"""Side-effect dispatch."""

from checkin_engine.services.dispatch.side_effect_dispatcher import SideEffectDispatcher, BestEffortDispatcher

__all__ = ["SideEffectDispatcher", "BestEffortDispatcher"]
