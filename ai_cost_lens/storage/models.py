"""
Data models for storage layer.

Defines history records and the request/response data they embed.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from ai_cost_lens.core.estimate import CostEstimate
from ai_cost_lens.core.pricing import Provider
from ai_cost_lens.core.thinking import (
    NoThinking,
    ThinkingDirective,
    directive_from_dict,
    directive_to_dict,
)
from ai_cost_lens.core.token_counter import GeneratedMedia, UsageReport


@dataclass(frozen=True)
class FileAttachment:
    """File sent alongside the prompt."""
    name: str
    mime_type: str
    data: str  # base64

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "mime_type": self.mime_type, "data": self.data}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileAttachment":
        return cls(name=data["name"], mime_type=data["mime_type"], data=data["data"])


@dataclass(frozen=True)
class ResponseData:
    """Provider response together with its cost estimate."""
    provider: Provider
    estimate: CostEstimate
    usage: UsageReport
    text: Optional[str] = None
    media: Tuple[GeneratedMedia, ...] = ()
    request_config: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider.value,
            "text": self.text,
            "media": [m.to_dict() for m in self.media],
            "request_config": self.request_config,
            "usage": self.usage.to_dict(),
            "estimate": self.estimate.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResponseData":
        return cls(
            provider=Provider(data["provider"]),
            estimate=CostEstimate.from_dict(data["estimate"]),
            usage=UsageReport.from_dict(data.get("usage") or {}),
            text=data.get("text"),
            media=tuple(GeneratedMedia.from_dict(m) for m in data.get("media", [])),
            request_config=dict(data.get("request_config") or {}),
        )


@dataclass(frozen=True)
class HistoryEntry:
    """Immutable record of one estimated model call.

    Embeds the full request parameters so the call can be restored and
    re-run, and the resulting estimate so it can be reviewed offline.
    """
    id: str
    timestamp: datetime
    provider: Provider
    model: str
    prompt: str
    result: ResponseData
    title: Optional[str] = None
    attachments: Tuple[FileAttachment, ...] = ()
    thinking: ThinkingDirective = field(default_factory=NoThinking)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "provider": self.provider.value,
            "model": self.model,
            "title": self.title,
            "prompt": self.prompt,
            "attachments": [a.to_dict() for a in self.attachments],
            "thinking": directive_to_dict(self.thinking),
            "result": self.result.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryEntry":
        return cls(
            id=data["id"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            provider=Provider(data["provider"]),
            model=data["model"],
            title=data.get("title"),
            prompt=data.get("prompt", ""),
            attachments=tuple(FileAttachment.from_dict(a) for a in data.get("attachments", [])),
            thinking=directive_from_dict(data.get("thinking")),
            result=ResponseData.from_dict(data["result"]),
        )
