"""
Supported-boss registry.

The set of non-player npc ids an uploaded log may contain. The registry is
loaded from a YAML file whose values are (possibly nested) groups of npc id
lists; group names are informational only:

    legion_raids:
      valtan: [480005, 480006]
    guardians: [512002, 512004]

The packaged `data/supported_bosses.yaml` is used unless
`Config.SUPPORTED_BOSSES_FILE` points elsewhere.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, FrozenSet, Iterable, Iterator, Optional, Union

import yaml

from dpslogs.core.config import Config
from dpslogs.core.logging.logger import get_logger

logger = get_logger(__name__)

PACKAGED_REGISTRY = Path(__file__).resolve().parent / "data" / "supported_bosses.yaml"


def _collect_ids(node: Any) -> Iterator[int]:
    if isinstance(node, dict):
        for value in node.values():
            yield from _collect_ids(value)
    elif isinstance(node, (list, tuple)):
        for value in node:
            yield from _collect_ids(value)
    elif isinstance(node, bool):
        raise ValueError(f"Invalid npc id in boss registry: {node!r}")
    elif isinstance(node, int):
        yield node
    elif node is not None:
        raise ValueError(f"Invalid npc id in boss registry: {node!r}")


class SupportedBossRegistry:
    """Immutable membership set of supported npc ids."""

    def __init__(self, npc_ids: Iterable[int]) -> None:
        self._npc_ids: FrozenSet[int] = frozenset(int(i) for i in npc_ids)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "SupportedBossRegistry":
        path = Path(path)
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)

        registry = cls(_collect_ids(data))
        logger.info(
            "Supported-boss registry loaded",
            extra={"file": str(path), "npc_count": len(registry)},
        )
        return registry

    @classmethod
    def default(cls, path: Optional[Union[str, Path]] = None) -> "SupportedBossRegistry":
        return cls.from_yaml(path or Config.SUPPORTED_BOSSES_FILE or PACKAGED_REGISTRY)

    def contains(self, npc_id: int) -> bool:
        return npc_id in self._npc_ids

    def __contains__(self, npc_id: object) -> bool:
        return npc_id in self._npc_ids

    def __len__(self) -> int:
        return len(self._npc_ids)

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._npc_ids))
