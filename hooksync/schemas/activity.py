"""PR / issue summary schemas"""

from typing import List, Literal

from pydantic import BaseModel


class ItemSummary(BaseModel):
    """Condensed view of a pull request or issue"""
    type: Literal["pr", "issue"]
    repo: str
    number: int
    title: str
    state: str
    author: str
    labels: List[str] = []
    body_preview: str = ""
    url: str = ""
    created_at: str = ""
    updated_at: str = ""

    # Pull requests only
    additions: int | None = None
    deletions: int | None = None
    head_ref: str | None = None
    base_ref: str | None = None
    mergeable: str | None = None
    review_decision: str | None = None

    def headline(self) -> str:
        kind = "PR" if self.type == "pr" else "Issue"
        return f"{kind} #{self.number}: {self.title} [{self.state}] by {self.author}"
