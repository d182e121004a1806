"""Redirect rule model"""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class Redirect:
    """A single host redirect rule.

    Status 302 sends the browser to ``to``; status 200 is a rewrite served
    from ``to`` without changing the address bar. ``force`` applies the rule
    even when a file exists at ``from_path``.
    """
    from_path: str
    to: str
    status: int = 302
    force: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_path,
            "to": self.to,
            "status": self.status,
            "force": self.force,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Redirect":
        return cls(
            from_path=data["from"],
            to=data["to"],
            status=int(data.get("status", 302)),
            force=bool(data.get("force", False)),
        )

    def to_line(self) -> str:
        """Render the rule in ``_redirects`` file syntax"""
        status = f"{self.status}!" if self.force else str(self.status)
        return f"{self.from_path} {self.to} {status}"
