"""Provider data types."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

ROLE_SYSTEM = "system"
ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"

ROLES = (ROLE_SYSTEM, ROLE_USER, ROLE_ASSISTANT)


def clean_text(text: str) -> str:
    """Replace lone UTF-16 surrogates with U+FFFD so the text encodes as UTF-8."""
    return text.encode("utf-16", "surrogatepass").decode("utf-16", "replace")


@dataclass(frozen=True)
class ProviderConfig:
    """One upstream OpenAI-compatible endpoint."""
    key: str
    name: str
    base_url: str
    credential: str = field(default="", repr=False)
    models: Tuple[str, ...] = ()

    @property
    def default_model(self) -> Optional[str]:
        return self.models[0] if self.models else None

    @property
    def completions_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/chat/completions"


@dataclass(frozen=True)
class ChatTurn:
    """One message in a conversation."""
    role: str
    content: str

    def as_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatTurn":
        return cls(role=str(data.get("role") or ROLE_USER), content=str(data.get("content") or ""))


@dataclass(frozen=True)
class ProviderReply:
    """Extracted content of a successful completion."""
    content: str
    model: Optional[str] = None
