# SPDX-License-Identifier: Apache-2.0

"""
Result containers shared by the domain validators.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class ValidationResult:
    """
    Verdict of a validation with its ordered diagnostic messages.

    Warnings are advisory: they are reported to callers but never make a
    result invalid.
    """
    is_valid: bool
    error_messages: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: List[str], warnings: List[str] = None) -> "ValidationResult":
        return cls(is_valid=len(errors) == 0, error_messages=list(errors), warnings=list(warnings or []))

    @classmethod
    def failure(cls, message: str) -> "ValidationResult":
        return cls(is_valid=False, error_messages=[message])

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation consumed by callers and the UI."""
        return {
            "isValid": self.is_valid,
            "errorMessages": list(self.error_messages),
            "warnings": list(self.warnings)
        }
