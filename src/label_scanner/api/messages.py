"""Wire schema for the scan WebSocket protocol."""

import json
import math
from datetime import datetime
from typing import Annotated, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from label_scanner.domain.nutrition import (
    NutrientDraft,
    NutrientTotals,
    NutritionalInfo,
)
from label_scanner.services.history import HistorySummary

PROTOCOL_VERSION = 1

INVALID_FORMAT = "Invalid message format"
UNKNOWN_TYPE = "Unknown message type"


class ProtocolError(Exception):
    """Raised when an inbound envelope cannot be turned into a message."""

    def __init__(self, client_message: str, detail: str | None = None) -> None:
        super().__init__(detail or client_message)
        self.client_message = client_message


class ScanData(BaseModel):
    """Payload of a ``scan`` request."""

    model_config = ConfigDict(populate_by_name=True)

    image: str = Field(strict=True)
    total_weight: float = Field(
        alias="totalWeight", ge=0.0, strict=True, allow_inf_nan=False
    )


class ConfirmScanData(BaseModel):
    """Payload of a ``confirm_scan`` request.

    Nutrient fields are lenient: a missing, non-numeric or non-finite value
    falls back to its default instead of rejecting the whole edit.
    """

    id: str = Field(strict=True)
    total_weight: float = 100.0
    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    fiber: float = 0.0
    sugar: float = 0.0

    @field_validator(
        "total_weight",
        "calories",
        "protein",
        "carbs",
        "fat",
        "fiber",
        "sugar",
        mode="before",
    )
    @classmethod
    def _default_when_not_a_number(cls, value: object, info: ValidationInfo) -> object:
        default = cls.model_fields[info.field_name].default
        if isinstance(value, bool) or not isinstance(value, int | float):
            return default
        try:
            number = float(value)
        except OverflowError:
            return default
        return number if math.isfinite(number) else default

    def to_draft(self) -> NutrientDraft:
        return NutrientDraft(
            calories=self.calories,
            protein=self.protein,
            carbs=self.carbs,
            fat=self.fat,
            fiber=self.fiber,
            sugar=self.sugar,
        )


class ScanMessage(BaseModel):
    """Request to analyze a label photo."""

    type: Literal["scan"]
    data: ScanData


class ConfirmScanMessage(BaseModel):
    """Request to persist an (optionally edited) draft."""

    type: Literal["confirm_scan"]
    data: ConfirmScanData


class GetHistoryMessage(BaseModel):
    """Request for recent records and totals."""

    type: Literal["get_history"]


InboundMessage = Annotated[
    ScanMessage | ConfirmScanMessage | GetHistoryMessage,
    Field(discriminator="type"),
]

_INBOUND_ADAPTER: TypeAdapter[InboundMessage] = TypeAdapter(InboundMessage)

MESSAGE_TYPES = frozenset({"scan", "confirm_scan", "get_history"})
# Types whose ``data`` is validated; any other type ignores it.
PAYLOAD_TYPES = frozenset({"scan", "confirm_scan"})

# (message type, field) -> client message; "missing" marks absent-field errors.
_FIELD_ERRORS: dict[tuple[str, str], str] = {
    ("scan", "image"): "Invalid image data",
    ("scan", "totalWeight"): "Invalid weight value",
    ("confirm_scan", "id"): "Invalid nutrition info ID format",
    ("confirm_scan", "id:missing"): "Missing nutrition info ID",
}


def parse_envelope(raw: str | bytes) -> InboundMessage:
    """Decode and validate one inbound envelope."""
    try:
        envelope = json.loads(raw)
    except (ValueError, RecursionError) as exc:
        raise ProtocolError(INVALID_FORMAT, f"Invalid JSON: {exc}") from exc
    if not isinstance(envelope, dict) or not isinstance(envelope.get("type"), str):
        raise ProtocolError(INVALID_FORMAT, "Envelope has no string type")

    message_type = envelope["type"]
    if message_type not in MESSAGE_TYPES:
        raise ProtocolError(UNKNOWN_TYPE, f"Unknown type {message_type!r}")

    candidate: dict[str, object] = {"type": message_type}
    if message_type in PAYLOAD_TYPES:
        data = envelope.get("data")
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ProtocolError(INVALID_FORMAT, "Envelope data is not an object")
        candidate["data"] = data

    try:
        return _INBOUND_ADAPTER.validate_python(candidate)
    except ValidationError as exc:
        raise ProtocolError(_describe(message_type, exc), str(exc)) from exc


def _describe(message_type: str, exc: ValidationError) -> str:
    for error in exc.errors():
        fields = [part for part in error["loc"] if isinstance(part, str)]
        field = fields[-1] if fields else ""
        if error["type"] == "missing":
            message = _FIELD_ERRORS.get((message_type, f"{field}:missing"))
            if message:
                return message
        message = _FIELD_ERRORS.get((message_type, field))
        if message:
            return message
    return INVALID_FORMAT


class NutritionalInfoPayload(BaseModel):
    """Outbound representation of a nutrient record."""

    id: str
    total_weight: float
    calories: float
    protein: float
    carbs: float
    fat: float
    fiber: float
    sugar: float
    image_path: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, info: NutritionalInfo) -> "NutritionalInfoPayload":
        return cls(
            id=info.id,
            total_weight=info.total_weight,
            calories=info.calories,
            protein=info.protein,
            carbs=info.carbs,
            fat=info.fat,
            fiber=info.fiber,
            sugar=info.sugar,
            image_path=info.image_path,
            created_at=info.created_at,
            updated_at=info.updated_at,
        )


class TotalsPayload(BaseModel):
    """Outbound macro totals."""

    calories: float
    protein: float
    carbs: float
    fat: float

    @classmethod
    def from_domain(cls, totals: NutrientTotals) -> "TotalsPayload":
        return cls(
            calories=totals.calories,
            protein=totals.protein,
            carbs=totals.carbs,
            fat=totals.fat,
        )


class HistoryPayload(BaseModel):
    """Outbound history response body."""

    items: list[NutritionalInfoPayload]
    day_total: TotalsPayload
    week_total: TotalsPayload


def scan_result(info: NutritionalInfo) -> dict[str, object]:
    """Build a ``scan_result`` envelope."""
    return {
        "type": "scan_result",
        "data": NutritionalInfoPayload.from_domain(info).model_dump(mode="json"),
    }


def scan_saved() -> dict[str, object]:
    """Build a ``scan_saved`` envelope."""
    return {"type": "scan_saved", "data": None}


def history(summary: HistorySummary) -> dict[str, object]:
    """Build a ``history`` envelope."""
    payload = HistoryPayload(
        items=[NutritionalInfoPayload.from_domain(item) for item in summary.items],
        day_total=TotalsPayload.from_domain(summary.day_total),
        week_total=TotalsPayload.from_domain(summary.week_total),
    )
    return {"type": "history", "data": payload.model_dump(mode="json")}


def error(message: str) -> dict[str, object]:
    """Build an ``error`` envelope; the text travels in ``message``."""
    return {"type": "error", "message": message}
