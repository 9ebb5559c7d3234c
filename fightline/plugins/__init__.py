"""
Plugin system for fightline.

A plugin is any ``.py`` file in a plugin directory that defines one or more
``PluginAnalyzer`` subclasses. Plugin analyzers run after the built-in ones,
so they can annotate casts and buffs that are already on the timeline.
Files whose name starts with ``_`` are never imported.
"""

from abc import abstractmethod
from pathlib import Path
from types import ModuleType
from typing import Any, Dict, Iterator, List, Sequence, Union
import importlib.util
import logging
import sys

from ..core.analyzers.base import AnalysisContext, Analyzer

logger = logging.getLogger(__name__)

MODULE_PREFIX = "fightline_plugins_"


class PluginAnalyzer(Analyzer):
    """Analyzer shipped outside the package."""

    @abstractmethod
    def can_analyze(self, context: AnalysisContext) -> bool:
        pass

    @abstractmethod
    def analyze(self, context: AnalysisContext) -> None:
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    def priority(self) -> int:
        """Plugins with a higher priority run first. Default 0."""
        return 0


def iter_plugin_files(plugin_dir: Path) -> Iterator[Path]:
    """Candidate plugin files of `plugin_dir`, in name order."""
    if not plugin_dir.is_dir():
        return
    for path in sorted(plugin_dir.glob("*.py")):
        if path.is_file() and not path.name.startswith("_"):
            yield path


def _import_file(path: Path) -> ModuleType:
    module_name = MODULE_PREFIX + path.stem
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot import {path}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(module_name, None)
        raise
    return module


def _analyzer_classes(module: ModuleType) -> Iterator[type]:
    # Only classes defined by the plugin itself; imported bases are skipped.
    for value in vars(module).values():
        if (
            isinstance(value, type)
            and issubclass(value, PluginAnalyzer)
            and value.__module__ == module.__name__
        ):
            yield value


class PluginManager:
    """Finds plugin files, imports them and instantiates their analyzers."""

    def __init__(self, plugin_dirs: Sequence[Union[str, Path]] = None):
        self.plugin_dirs: List[Path] = []
        for plugin_dir in plugin_dirs or []:
            self.add_plugin_dir(plugin_dir)
        self.analyzers: List[PluginAnalyzer] = []
        self.loaded_plugins: Dict[str, ModuleType] = {}
        self.failed_plugins: Dict[str, str] = {}

    def add_plugin_dir(self, plugin_dir: Union[str, Path]) -> None:
        plugin_dir = Path(plugin_dir)
        if plugin_dir not in self.plugin_dirs:
            self.plugin_dirs.append(plugin_dir)

    def load_plugins(self) -> List[PluginAnalyzer]:
        """Import every plugin file and return the analyzers, by priority."""
        for plugin_dir in self.plugin_dirs:
            for path in iter_plugin_files(plugin_dir):
                self._load(path)
        self.analyzers.sort(key=lambda a: a.priority, reverse=True)
        return self.get_analyzers()

    def _load(self, path: Path) -> None:
        try:
            module = _import_file(path)
        except Exception as e:
            self.failed_plugins[path.stem] = str(e)
            logger.warning("Failed to load plugin %s: %s", path, e)
            return

        self.loaded_plugins[path.stem] = module
        for cls in _analyzer_classes(module):
            try:
                analyzer = cls()
            except Exception as e:
                self.failed_plugins[f"{path.stem}.{cls.__name__}"] = str(e)
                logger.warning("Cannot instantiate %s from plugin %s: %s", cls.__name__, path, e)
                continue
            logger.info("Loaded analyzer plugin: %s", analyzer.name)
            self.analyzers.append(analyzer)

    def get_analyzers(self) -> List[PluginAnalyzer]:
        return list(self.analyzers)

    def get_plugin_info(self) -> Dict[str, Any]:
        return {
            "plugin_dirs": [str(d) for d in self.plugin_dirs],
            "loaded_plugins": list(self.loaded_plugins),
            "failed_plugins": dict(self.failed_plugins),
            "analyzers": [a.name for a in self.analyzers],
        }
