from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from errors import AuthenticationRequired


@dataclass
class AuthContext:
    """Token and user of the signed-in account.

    Passed explicitly to every client that makes privileged calls.
    """

    token: Optional[str] = None
    user: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_login(cls, payload: Dict[str, Any]) -> "AuthContext":
        return cls(token=payload.get("token"), user=payload.get("user") or {})

    def require_token(self) -> str:
        if not self.token:
            raise AuthenticationRequired("Authentication required: No token found")
        return self.token

    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.require_token()}"}
