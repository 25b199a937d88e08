"""Static credential registry.

The built-in table is demo data. Anything implementing
``CredentialRegistry.find_by_identifier`` can replace it.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from lumina.core.enums import Role
from lumina.core.protocols import Principal

logger = logging.getLogger(__name__)


BUILTIN_PRINCIPALS: List[Principal] = [
    Principal(
        identifier="MWTINC",
        secret="JC222@Vemous$24",
        role=Role.ADMIN,
        department="Executive",
        title="Chief Security Officer",
    ),
    Principal(
        identifier="LuminaAdmin",
        secret="Lumina#2024!",
        role=Role.ADMIN,
        department="Technology",
        title="Lead Developer",
    ),
    Principal(
        identifier="SecurityTeam",
        secret="Secure@Lumina789",
        role=Role.ADMIN,
        department="Security",
        title="Security Analyst",
    ),
    Principal(
        identifier="ContentManager",
        secret="Content$2024#",
        role=Role.ADMIN,
        department="Content",
        title="Content Director",
    ),
]


class StaticCredentialRegistry:
    """In-memory principal table keyed by exact (case-sensitive) identifier."""

    def __init__(self, principals: Iterable[Principal] | None = None) -> None:
        self._principals: Dict[str, Principal] = {}
        for principal in (BUILTIN_PRINCIPALS if principals is None else principals):
            if principal.identifier in self._principals:
                raise ValueError(f"Duplicate principal identifier: {principal.identifier}")
            self._principals[principal.identifier] = principal

    def find_by_identifier(self, identifier: str) -> Optional[Principal]:
        return self._principals.get(identifier)

    def __len__(self) -> int:
        return len(self._principals)
