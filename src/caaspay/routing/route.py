"""RouteDefinition and RouteMatch frozen dataclasses."""

from dataclasses import dataclass, field

from caaspay.routing.pattern import PathSegment, parse_pattern, route_shape


@dataclass(frozen=True, slots=True)
class RouteDefinition:
    """One entry of ``routes.yaml``.

    Immutable once part of a compiled snapshot; superseded, never mutated,
    on reload.
    """

    method: str
    pattern: str
    handler_name: str
    required_capabilities: frozenset[str] = frozenset()
    timeout: float | None = None
    public: bool = False
    segments: tuple[PathSegment, ...] = field(default=(), compare=False, repr=False)

    def __post_init__(self) -> None:
        if not self.segments:
            object.__setattr__(self, "segments", parse_pattern(self.pattern))

    @property
    def shape(self) -> tuple:
        """Method plus normalized segment shape, used for conflict detection."""
        return (self.method, route_shape(self.segments))

    def __str__(self) -> str:
        return f"{self.method} {self.pattern} -> {self.handler_name}"


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: RouteDefinition
    path_params: dict[str, str]
