"""Domain value objects."""

from permengine.domain.value_objects.change_kind import ChangeKind
from permengine.domain.value_objects.permission_name import PermissionName
from permengine.domain.value_objects.permission_state import PermissionState
from permengine.domain.value_objects.reason_code import DecisionSource, ReasonCode
from permengine.domain.value_objects.validation_severity import ValidationSeverity

__all__ = [
    "ChangeKind",
    "DecisionSource",
    "PermissionName",
    "PermissionState",
    "ReasonCode",
    "ValidationSeverity",
]
