# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Adapter registry providing lookup by name or tool category."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Iterator, Mapping

from ..capabilities import ToolCategory
from .base import ToolAdapter


class AdapterRegistry(Mapping[str, ToolAdapter]):
    """Read-only mapping of adapter names to :class:`ToolAdapter` instances.

    Adapters keep their registration order, which is also the order the
    engine schedules them in.
    """

    def __init__(self, adapters: Iterable[ToolAdapter] = ()) -> None:
        self._adapters: dict[str, ToolAdapter] = {}
        self._by_category: dict[ToolCategory, list[str]] = defaultdict(list)
        for adapter in adapters:
            self.register(adapter)

    def register(self, adapter: ToolAdapter) -> None:
        """Register ``adapter``, enforcing unique names.

        Raises:
            ValueError: If an adapter with the same name is already registered.
        """

        if adapter.name in self._adapters:
            raise ValueError(f"Adapter '{adapter.name}' already registered")
        self._adapters[adapter.name] = adapter
        self._by_category[adapter.category].append(adapter.name)

    def try_get(self, name: str) -> ToolAdapter | None:
        """Return the adapter named ``name`` when registered, otherwise ``None``."""
        return self._adapters.get(name)

    def adapters_for(self, category: ToolCategory | str) -> tuple[ToolAdapter, ...]:
        """Return the adapters belonging to ``category`` in registration order."""
        names = self._by_category.get(ToolCategory(category), [])
        return tuple(self._adapters[name] for name in names)

    def __getitem__(self, name: str) -> ToolAdapter:
        return self._adapters[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._adapters)

    def __len__(self) -> int:
        return len(self._adapters)


__all__ = ["AdapterRegistry"]
