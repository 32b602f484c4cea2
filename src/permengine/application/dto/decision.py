"""Authorization decision DTO."""

from dataclasses import dataclass

from permengine.domain.value_objects import DecisionSource, ReasonCode


@dataclass(frozen=True)
class Decision:
    """Outcome of an authorization question, with a loggable reason."""

    authorized: bool
    permission: str
    reason_code: ReasonCode
    reason: str
    effective_permissions: frozenset[str] = frozenset()
    source: DecisionSource = DecisionSource.NONE
    inherited_from: str | None = None
    matched: tuple[str, ...] = ()
    missing: tuple[str, ...] = ()

    @classmethod
    def denied(
        cls,
        permission: str,
        reason_code: ReasonCode,
        reason: str,
        effective_permissions: frozenset[str] = frozenset(),
        missing: tuple[str, ...] = (),
    ) -> "Decision":
        return cls(
            authorized=False,
            permission=permission,
            reason_code=reason_code,
            reason=reason,
            effective_permissions=effective_permissions,
            missing=missing,
        )
