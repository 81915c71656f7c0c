"""
Shared shape for identifier validators.

Validators are stateless: ``validate`` returns both the verdict and the
reason, so one instance can be shared freely across concurrent requests.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ValidationResult:
    """Verdict plus a human-readable explanation."""

    valid: bool
    reason: str

    def __bool__(self) -> bool:
        return self.valid


class Validator(ABC):
    """Base class for checksum validators over raw strings."""

    name: str = "identifier"

    @abstractmethod
    def validate(self, raw: Optional[str]) -> ValidationResult:
        ...

    def is_valid(self, raw: Optional[str]) -> bool:
        return self.validate(raw).valid


def is_blank(raw: Optional[str]) -> bool:
    return raw is None or not isinstance(raw, str) or not raw.strip()
