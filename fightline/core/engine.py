from dataclasses import asdict
from pathlib import Path
from typing import Dict, Any, List, Optional, Sequence, Tuple
import logging

from .. import __version__
from ..config import Config
from ..plugins import PluginManager
from .action_data import ActionTable, load_action_table
from .analyzers.base import (
    AnalysisContext,
    Analyzer,
    AnnotationAnalyzer,
    BuffAnalyzer,
    CastAnalyzer,
)
from .annotations import Severity
from .models import FightSession
from .sinks import MemorySink, ScrollHost, TimelineSink
from .timeline import Timeline

logger = logging.getLogger(__name__)


class FightAnalysis:
    """Runs every analyzer over one fight and renders its timeline."""

    def __init__(
        self,
        config: Config = None,
        actions: Optional[ActionTable] = None,
        plugin_dirs: Sequence[Path] = (),
    ):
        self.config = config or Config()
        self.actions = actions if actions is not None else self._load_actions()

        # Built-in analyzers, in the order they run
        self.analyzers: List[Analyzer] = []
        enabled = self.config.get("analyzers", {}) or {}
        if enabled.get("casts", True):
            self.analyzers.append(CastAnalyzer())
        if enabled.get("buffs", True):
            self.analyzers.append(BuffAnalyzer())
        if enabled.get("annotations", True):
            self.analyzers.append(AnnotationAnalyzer())

        # Plugin analyzers run after the built-ins, highest priority first
        dirs = [Path(d) for d in (self.config.get("plugin_dirs", []) or [])]
        dirs.extend(Path(d) for d in plugin_dirs)
        self.plugin_manager = PluginManager(dirs)
        self.plugin_manager.load_plugins()
        self.analyzers.extend(self.plugin_manager.get_analyzers())

        self.timeline: Optional[Timeline] = None

    def _load_actions(self) -> ActionTable:
        path = self.config.get("action_data_path")
        if not path:
            return ActionTable()
        return load_action_table(Path(path))

    def run(
        self,
        session: FightSession,
        events: List[Dict[str, Any]],
        annotations: Optional[List[Dict[str, Any]]] = None,
        sink: Optional[TimelineSink] = None,
        window: Optional[Tuple[int, int]] = None,
        scroll_host: Optional[ScrollHost] = None,
    ) -> Dict[str, Any]:
        """Analyze one fight and return the rendered report."""
        timeline = Timeline.from_config(session, self.config, self.actions, scroll_host)
        if window is not None:
            timeline.show(window[0], window[1], scroll_to=False)

        context = AnalysisContext(
            session=session,
            timeline=timeline,
            events=list(events),
            actions=self.actions,
            annotations=list(annotations or []),
            config=self.config,
        )

        ran = []
        for analyzer in self.analyzers:
            if not analyzer.can_analyze(context):
                continue
            logger.info("Running analyzer: %s", analyzer.name)
            try:
                analyzer.analyze(context)
                ran.append(analyzer.name)
            except Exception as e:
                logger.error("Analyzer %s failed: %s", analyzer.name, e)

        finalize = timeline.render(sink or MemorySink())
        if finalize.unresolved:
            logger.info("%d annotations could not be placed on the timeline", finalize.unresolved)
        self.timeline = timeline

        return {
            "meta": {
                "tool": "fightline",
                "version": __version__,
                "analyzers": ran,
            },
            "fight": session.to_dict(),
            "finalize": finalize.to_dict(),
            "unresolved": {
                severity.value: [asdict(r) for r in timeline.queues.pending(severity)]
                for severity in Severity
            },
            "view_model": timeline.view_model(),
            "options": timeline.view_options().to_dict(),
        }
