"""Registry of interchangeable algorithms (indicators, strategies, risk, portfolio).

There is no global instance: build one at start-up (see
``ta_bt.plugins.build_default_registry``) and pass it to whatever needs it.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Dict, List, Optional, Protocol, Sequence, Type, TypeVar, runtime_checkable

from .types import Bar, Signal

CATEGORIES = ("indicator", "strategy", "risk", "portfolio")

P = TypeVar("P")


@runtime_checkable
class Plugin(Protocol):
    id: str
    name: str
    category: str
    description: str
    params_type: Type[Any]


@runtime_checkable
class IndicatorPlugin(Plugin, Protocol):
    def compute(self, bars: Sequence[Bar], params: Any) -> Any: ...


@runtime_checkable
class StrategyPlugin(Plugin, Protocol):
    def generate_signals(self, bars: Sequence[Bar], params: Any) -> List[Signal]: ...


@runtime_checkable
class RiskPlugin(Plugin, Protocol):
    def analyze(self, returns: Sequence[float], params: Any) -> Any: ...


@runtime_checkable
class PortfolioPlugin(Plugin, Protocol):
    def optimize(self, assets: Sequence[Any], params: Any) -> Any: ...


def params_from_dict(params_type: Type[P], d: Optional[Dict[str, Any]]) -> P:
    """Build a typed params dataclass from a loose dict. Unknown keys are ignored."""
    names = {f.name for f in dataclasses.fields(params_type)}
    return params_type(**{k: v for k, v in (d or {}).items() if k in names})


class PluginRegistry:
    def __init__(self) -> None:
        self._plugins: Dict[str, Plugin] = {}

    def register(self, plugin: Plugin) -> None:
        """Register a plugin. Raises ValueError if the id is already taken."""
        if plugin.id in self._plugins:
            raise ValueError(f'Plugin "{plugin.id}" is already registered.')
        if plugin.category not in CATEGORIES:
            raise ValueError(f'Plugin "{plugin.id}" has unknown category "{plugin.category}".')
        self._plugins[plugin.id] = plugin

    def get(self, plugin_id: str) -> Plugin:
        try:
            return self._plugins[plugin_id]
        except KeyError:
            raise KeyError(f'Plugin "{plugin_id}" is not registered.') from None

    def by_category(self, category: str) -> List[Plugin]:
        return [p for p in self._plugins.values() if p.category == category]

    def list(self) -> List[Plugin]:
        return list(self._plugins.values())

    def __contains__(self, plugin_id: str) -> bool:
        return plugin_id in self._plugins

    def __len__(self) -> int:
        return len(self._plugins)
