from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True, slots=True)
class Credential:
    """Delegated DocuSign access for one impersonated principal."""

    access_token: str
    base_path: str
    account_id: str
    expires_in: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Credential":
        return cls(
            access_token=data["access_token"],
            base_path=data["base_path"],
            account_id=data["account_id"],
            expires_in=data.get("expires_in"),
        )


@dataclass(frozen=True, slots=True)
class TokenResponse:
    access_token: str
    token_type: str = "Bearer"
    expires_in: Optional[int] = None


@dataclass(frozen=True, slots=True)
class AccountInfo:
    account_id: str
    base_path: str
    account_name: Optional[str] = None
