"""Permission name - "{resource}.{action}"."""

from dataclasses import dataclass

SEPARATOR = "."


@dataclass(frozen=True)
class PermissionName:
    """Parsed permission name."""

    resource: str
    action: str

    def __post_init__(self) -> None:
        if not self.resource or not self.resource.strip():
            raise ValueError("Resource cannot be empty")
        if not self.action or not self.action.strip():
            raise ValueError("Action cannot be empty")
        if SEPARATOR in self.resource.strip() or SEPARATOR in self.action.strip():
            raise ValueError("Resource and action cannot contain '.'")

    @classmethod
    def parse(cls, value: str) -> "PermissionName":
        """Parse "Resource.Action". Raises ValueError when malformed."""
        if not isinstance(value, str):
            raise ValueError(f"Permission name must be a string, not {type(value).__name__}")
        if not value.strip():
            raise ValueError("Permission name cannot be empty")
        resource, sep, action = value.strip().partition(SEPARATOR)
        if not sep:
            raise ValueError(f"Permission name '{value}' must be 'Resource.Action'")
        return cls(resource=resource.strip(), action=action.strip())

    @classmethod
    def of(cls, resource: str, action: str) -> "PermissionName":
        for part in (resource, action):
            if part is not None and not isinstance(part, str):
                raise ValueError(f"Resource and action must be strings, not {type(part).__name__}")
        return cls(resource=(resource or "").strip(), action=(action or "").strip())

    def __str__(self) -> str:
        return f"{self.resource.strip()}{SEPARATOR}{self.action.strip()}"
