"""
Log validator: structural and domain checks for submitted logs.

Purpose
-------
Gatekeeper run before anything is persisted.

Structural rules come from the pydantic models in `schemas` (required fields,
types, non-negative numbers, at least one entity). Domain rules:
- at least one PLAYER entity
- every non-PLAYER npcId is in the supported-boss registry

Error Detail
------------
Structural failures are flattened into `ConstraintViolation` items with
dot-joined paths (`entities.0.npcId`). In strict mode (any environment but
development, unless overridden) the caller only sees "Invalid log structure".
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from dpslogs.core.config import Config
from dpslogs.core.logging.logger import get_logger
from dpslogs.modules.logs.bosses import SupportedBossRegistry
from dpslogs.modules.logs.schemas import Log
from dpslogs.modules.shared.exceptions import ValidationFailedError

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConstraintViolation:
    path: str
    constraint: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def flatten_errors(error: ValidationError) -> List[ConstraintViolation]:
    return [
        ConstraintViolation(
            path=".".join(str(part) for part in item["loc"]),
            constraint=item["type"],
            message=item["msg"],
        )
        for item in error.errors()
    ]


class LogValidator:
    """
    Args:
        registry: Supported-boss registry
        strict: Hide violation detail. Defaults to `not Config.is_development()`
    """

    def __init__(self, registry: SupportedBossRegistry, strict: Optional[bool] = None) -> None:
        self.registry = registry
        self._strict = strict

    @property
    def strict(self) -> bool:
        if self._strict is not None:
            return self._strict
        return not Config.is_development()

    def _parse(self, candidate: Union[Log, Mapping[str, Any]]) -> Log:
        data = candidate.model_dump(by_alias=True) if isinstance(candidate, Log) else candidate
        try:
            return Log.model_validate(data)
        except ValidationError as exc:
            violations = flatten_errors(exc)
            logger.info(
                "Log failed structural validation",
                extra={"violation_count": len(violations)},
            )
            if self.strict:
                raise ValidationFailedError("Invalid log structure") from exc
            raise ValidationFailedError(
                "; ".join(f"{v.path}: {v.message}" for v in violations),
                violations=[v.to_dict() for v in violations],
            ) from exc

    def validate(self, candidate: Union[Log, Mapping[str, Any]]) -> Log:
        """
        Validate a submitted log.

        Returns:
            The parsed `Log`

        Raises:
            ValidationFailedError: On the first rule the log breaks
        """
        log = self._parse(candidate)

        if not log.players():
            raise ValidationFailedError("No players found in log")

        for entity in log.non_players():
            if entity.npc_id not in self.registry:
                raise ValidationFailedError(
                    f"{entity.npc_id} is not a supported boss",
                    details={"npc_id": entity.npc_id},
                )

        return log
