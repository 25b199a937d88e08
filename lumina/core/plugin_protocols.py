"""Plugin Protocol definitions — interfaces for replaceable backends.

Backends provide storage and identity lookup. They contain NO security
logic: attempt counting, lockout and policy decisions belong exclusively to
the kernel.

These use Python's Protocol (structural subtyping) so a hashed-credential
store or another key-value medium can be swapped in without inheritance.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from lumina.core.protocols import Principal


@runtime_checkable
class CredentialRegistry(Protocol):
    """Identity lookup. Secret comparison is done by the session manager."""

    def find_by_identifier(self, identifier: str) -> Optional[Principal]: ...


@runtime_checkable
class KeyValueStore(Protocol):
    """Persistence port. Values are JSON-serialisable records.

    ``get`` returns ``default`` when the key is absent and raises
    ``PersistenceCorrupt`` when the stored value cannot be decoded.
    """

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...

    def get_or_default(self, key: str, default: Any = None) -> Any: ...
