"""Outcomes of an EC2 instance lookup.

A lookup either finds values, finds nothing, or fails at the provider. The
three cases are distinct types so callers can react to each one.
"""
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from botocore.exceptions import ClientError


@dataclass(frozen=True)
class Found:
    role: str
    values: Tuple[str, ...]


@dataclass(frozen=True)
class NotFound:
    role: str
    name_tags: Tuple[str, ...]


@dataclass(frozen=True)
class ProviderError:
    """Structured detail of a failed provider call."""
    role: str
    error_type: str
    message: str
    error_code: Optional[str] = None

    @classmethod
    def from_exception(cls, role: str, error: Exception) -> "ProviderError":
        error_code = None
        if isinstance(error, ClientError):
            error_code = error.response.get('Error', {}).get('Code')
        return cls(
            role=role,
            error_type=type(error).__name__,
            message=str(error),
            error_code=error_code,
        )

    def describe(self) -> str:
        code = f" [{self.error_code}]" if self.error_code else ""
        return f"{self.error_type}{code}: {self.message}"


LookupResult = Union[Found, NotFound, ProviderError]
