from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class User:
    email: str
    password_hash: str = field(repr=False)
    token: Optional[str] = field(default=None, repr=False)
    subscribed: bool = False

    @classmethod
    def from_row(cls, row: Any) -> "User":
        return cls(
            email=str(row["email"]),
            password_hash=str(row["password_hash"] or ""),
            token=row["token"] or None,
            subscribed=int(row["subscribed"] or 0) == 1,
        )

    def public(self) -> Dict[str, Any]:
        """Fields safe to send to a client. Never includes the password hash or token."""
        return {"email": self.email, "subscribed": self.subscribed}

