"""Structured log record - one parsed line of switch log output."""

from datetime import datetime
from typing import Optional

from pydantic import ConfigDict, Field

from fs_callflow.models.base import CallFlowModel


class StructuredRecord(CallFlowModel):
    """A single log line split into its structural parts.

    No semantic interpretation happens here. A line that matched no grammar
    still produces a record carrying only ``raw_line`` and ``message``.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: Optional[datetime] = None
    severity: str = ""
    module: Optional[str] = None
    message: str = ""
    raw_line: str
    inline_id: Optional[str] = Field(
        None, description="Channel identifier found in the line, if any"
    )
    key_values: dict[str, str] = Field(default_factory=dict)

    @property
    def is_structured(self) -> bool:
        """Whether the line matched the primary grammar."""
        return bool(self.severity)
