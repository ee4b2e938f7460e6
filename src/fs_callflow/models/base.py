"""Shared model base and timestamp helpers for call-flow models."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict


T = TypeVar("T", bound="CallFlowModel")


class CallFlowModel(BaseModel):
    """Base for records, events, graphs and reports.

    Enum fields hold their plain string values once validated, so graphs
    and reports dump straight to JSON and compare equal after a reload.
    """

    model_config = ConfigDict(
        use_enum_values=True,
        validate_assignment=True,
    )

    def to_json(self, indent: int = 2) -> str:
        """Pretty-printed JSON text of the model."""
        return self.model_dump_json(indent=indent)

    def to_dict(self) -> dict[str, Any]:
        """Plain dictionary of the model, for comparisons and ad hoc output."""
        return self.model_dump()

    @classmethod
    def from_json(cls: type[T], json_str: str) -> T:
        """Validate a model from JSON text."""
        return cls.model_validate_json(json_str)

    @classmethod
    def load_from_file(cls: type[T], file_path: str | Path) -> T:
        """Read a report (or any model) previously written by ``save_to_file``.

        Args:
            file_path: Path to a UTF-8 JSON file

        Returns:
            Model instance
        """
        return cls.from_json(Path(file_path).read_text(encoding="utf-8"))

    def save_to_file(self, file_path: str | Path, indent: int = 2) -> None:
        """Write the model as UTF-8 JSON, creating missing parent directories.

        Args:
            file_path: Destination path
            indent: JSON indentation
        """
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json(indent=indent), encoding="utf-8")


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Return ``dt`` in UTC.

    Switch log timestamps carry no zone; naive values are read as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_epoch_ms(dt: datetime | None) -> int | None:
    """Milliseconds since the Unix epoch, or None for a missing timestamp."""
    utc = ensure_utc(dt)
    if utc is None:
        return None
    return int(round(utc.timestamp() * 1000))
