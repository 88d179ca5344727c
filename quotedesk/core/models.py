"""Data models for quote requests backed by HiSAFE tasks."""
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

QUOTE_STATUSES = ("pending", "processing", "approved", "denied")
AUTHOR_TYPES = ("client", "contractor")

PLACEHOLDER_EMAIL = "unknown@example.com"
SYSTEM_AUTHOR = "System"


@dataclass
class Comment:
    """A single entry of a quote's comment history."""

    id: str
    author: str
    author_type: str
    message: str
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        """Return the wire representation stored in the upstream comment log."""

        return {
            "id": self.id,
            "author": self.author,
            "authorType": self.author_type,
            "message": self.message,
            "timestamp": self.timestamp,
        }


@dataclass
class QuoteRequest:
    """Normalized view of one upstream task, ready for the dashboard."""

    id: str
    client_name: str = ""
    client_email: str = PLACEHOLDER_EMAIL
    client_phone: str = ""
    project_type: str = ""
    project_description: str = ""
    budget: str = ""
    timeline: str = ""
    location: str = ""
    status: str = "pending"
    submitted_at: str = ""
    updated_at: str = ""
    estimated_cost: Optional[float] = None
    notes: str = ""
    comments: List[Comment] = field(default_factory=list)
    job_id: str = ""
    item_part_name: str = ""
    item_part_size: str = ""
    estimated_job_hours: Optional[float] = None
    quote_expiration_date: str = ""
    quote_total: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Return a plain dictionary representation for tables and exports."""

        data = asdict(self)
        data["comments"] = [comment.to_dict() for comment in self.comments]
        return data


@dataclass
class QuoteStats:
    """Per-status counts plus the summed estimated value of a quote list."""

    total: int = 0
    pending: int = 0
    processing: int = 0
    approved: int = 0
    denied: int = 0
    total_value: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
