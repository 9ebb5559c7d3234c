"""
Example plugin for fightline.

This plugin demonstrates how to write an analyzer that annotates casts
already placed on the timeline. Copy it into a plugin directory and pass
``--plugin-dir`` to the CLI.
"""

from fightline.plugins import PluginAnalyzer
from fightline.core.analyzers.base import AnalysisContext


class GcdDriftAnalyzer(PluginAnalyzer):
    """Warns when a GCD is used later than its recast allows."""

    def can_analyze(self, context: AnalysisContext) -> bool:
        return bool(context.events_of_type("cast"))

    def analyze(self, context: AnalysisContext) -> None:
        config = context.config
        recast = int(config.get("gcd_recast_ms", 2500)) if config else 2500
        tolerance = int(config.get("gcd_drift_tolerance_ms", 500)) if config else 500

        previous = None
        for event in context.events_of_type("cast"):
            action = context.actions.get((event.get("ability") or {}).get("guid"))
            if action is None or not action.on_gcd:
                continue
            if previous is not None:
                drift = event["timestamp"] - previous - recast
                if drift > tolerance:
                    context.timeline.add_warning_to_event(
                        event, f"GCD drifted by {drift} ms"
                    )
            previous = event["timestamp"]

    @property
    def name(self) -> str:
        return "GcdDrift"

    @property
    def priority(self) -> int:
        return 1
