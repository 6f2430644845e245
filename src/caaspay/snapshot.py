"""Snapshot — one immutable, versioned bundle of routing and credential state.

Exactly one snapshot is current at any instant. Requests hold a reference to
the snapshot they were matched against; an old snapshot lives until its last
request drops that reference.
"""

from dataclasses import dataclass

from caaspay.config import EnvSettings
from caaspay.routing.table import RouteTable
from caaspay.security.credentials import CredentialRegistry


@dataclass(frozen=True, slots=True, weakref_slot=True)
class Snapshot:
    """Compiled state of one configuration generation."""

    version: int
    routes: RouteTable
    credentials: CredentialRegistry
    env: EnvSettings

    def __repr__(self) -> str:
        return (
            f"<Snapshot v{self.version} mode={self.env.mode.value} "
            f"routes={len(self.routes)} credentials={len(self.credentials)}>"
        )
