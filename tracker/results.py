# tracker/results.py
"""
Uniform return type for every adapter call.

Adapters report failures as values so the orchestrator can walk its fallback
chain without using exceptions for control flow.
"""

from dataclasses import dataclass
from typing import Any, Optional

# Error codes
E_NOT_CONFIGURED = "E_NOT_CONFIGURED"
E_IO = "E_IO"
E_BAD_DATA = "E_BAD_DATA"
E_NOT_FOUND = "E_NOT_FOUND"
E_LOCKED = "E_LOCKED"


@dataclass
class AdapterResult:
    ok: bool
    value: Any = None
    error_code: Optional[str] = None
    message: str = ""
    # False when the adapter acknowledged a mutation without persisting it
    durable: bool = True

    @classmethod
    def success(cls, value: Any = None, durable: bool = True) -> "AdapterResult":
        return cls(ok=True, value=value, durable=durable)

    @classmethod
    def failure(cls, error_code: str, message: str = "") -> "AdapterResult":
        return cls(ok=False, error_code=error_code, message=message, durable=False)

    @property
    def committed(self) -> bool:
        return self.ok and self.durable
