"""Scan result and history entry models."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Symbology(str, Enum):
    """Barcode formats, named after ZBar symbol types."""

    EAN13 = "EAN13"
    EAN8 = "EAN8"
    UPCA = "UPCA"
    UPCE = "UPCE"
    CODE128 = "CODE128"
    CODE39 = "CODE39"
    CODE93 = "CODE93"
    CODABAR = "CODABAR"
    I25 = "I25"
    QRCODE = "QRCODE"
    PDF417 = "PDF417"
    DATABAR = "DATABAR"


# Code 128, EAN-13/8, Code 39, Codabar, UPC-A/E, interleaved 2 of 5, plus QR.
DEFAULT_SYMBOLOGIES = frozenset(
    {
        Symbology.CODE128,
        Symbology.EAN13,
        Symbology.EAN8,
        Symbology.CODE39,
        Symbology.CODABAR,
        Symbology.UPCA,
        Symbology.UPCE,
        Symbology.I25,
        Symbology.QRCODE,
    }
)


def parse_symbologies(raw: str) -> frozenset[Symbology]:
    """Parse a comma separated list such as ``"EAN13, qrcode"``."""
    names = [part.strip().upper() for part in (raw or "").split(",")]
    return frozenset(Symbology(name) for name in names if name)


@dataclass(frozen=True)
class ScanResult:
    text: str
    symbology: Symbology
    detected_at: datetime


@dataclass(frozen=True)
class HistoryEntry:
    id: int
    text: str
    symbology: Symbology
    detected_at: datetime

    @classmethod
    def from_result(cls, entry_id: int, result: ScanResult) -> "HistoryEntry":
        return cls(
            id=entry_id,
            text=result.text,
            symbology=result.symbology,
            detected_at=result.detected_at,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "symbology": self.symbology.value,
            "detected_at": self.detected_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, payload: dict) -> "HistoryEntry":
        return cls(
            id=int(payload["id"]),
            text=str(payload["text"]),
            symbology=Symbology(payload["symbology"]),
            detected_at=datetime.fromisoformat(payload["detected_at"]),
        )
