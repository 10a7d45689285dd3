from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Callable, Mapping

from .errors import AutomationError

ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _text(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    return str(value).strip()


def _flag(data: Mapping[str, Any], key: str) -> bool | None:
    value = data.get(key)
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
        return None
    return bool(value)


def _is_iso_date(value: str) -> bool:
    if not ISO_DATE.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


@dataclass(frozen=True)
class FamilyMember:
    passport_number: str
    full_passport_name: str
    nationality: str
    date_of_birth: str = ""
    country_of_birth: str = ""
    gender: str = ""
    passport_expiry_date: str = ""
    has_visa_or_kitas: bool | None = None
    visa_or_kitas_number: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FamilyMember":
        return cls(
            passport_number=_text(data, "passportNumber"),
            full_passport_name=_text(data, "fullPassportName") or _text(data, "name"),
            nationality=_text(data, "nationality"),
            date_of_birth=_text(data, "dateOfBirth"),
            country_of_birth=_text(data, "countryOfBirth"),
            gender=_text(data, "gender"),
            passport_expiry_date=_text(data, "passportExpiryDate"),
            has_visa_or_kitas=_flag(data, "hasVisaOrKitas"),
            visa_or_kitas_number=_text(data, "visaOrKitasNumber"),
        )


@dataclass(frozen=True)
class DeclaredGood:
    description: str
    quantity: str
    value: str
    currency: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DeclaredGood":
        return cls(
            description=_text(data, "description"),
            quantity=_text(data, "quantity"),
            value=_text(data, "value"),
            currency=_text(data, "currency").upper(),
        )


@dataclass(frozen=True)
class ApplicantForm:
    passport_number: str
    full_passport_name: str
    nationality: str
    date_of_birth: str
    arrival_date: str
    citizenship_type: str = "foreign"
    country_of_birth: str = ""
    gender: str = ""
    passport_expiry_date: str = ""
    mobile_number: str = ""
    email: str = ""
    departure_date: str = ""
    has_visa_or_kitas: bool | None = None
    visa_or_kitas_number: str = ""
    mode_of_transport: str = "AIR"
    purpose_of_travel: str = ""
    place_of_arrival: str = ""
    type_of_air_transport: str = ""
    flight_name: str = ""
    flight_number: str = ""
    type_of_vessel: str = ""
    vessel_name: str = ""
    address_in_indonesia: str = ""
    has_symptoms: bool | None = False
    selected_symptoms: tuple[str, ...] = ()
    countries_visited: tuple[str, ...] = ()
    has_quarantine_items: bool | None = False
    has_goods_to_declare: bool | None = False
    declared_goods: tuple[DeclaredGood, ...] = ()
    has_technology_devices: bool | None = False
    baggage_count: str = "0"
    consent_accurate: bool = True
    family_members: tuple[FamilyMember, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ApplicantForm":
        members = data.get("familyMembers") or []
        goods = data.get("declaredGoods") or []
        return cls(
            citizenship_type=_text(data, "citizenshipType") or "foreign",
            passport_number=_text(data, "passportNumber"),
            full_passport_name=_text(data, "fullPassportName"),
            nationality=_text(data, "nationality"),
            date_of_birth=_text(data, "dateOfBirth"),
            country_of_birth=_text(data, "countryOfBirth"),
            gender=_text(data, "gender"),
            passport_expiry_date=_text(data, "passportExpiryDate"),
            mobile_number=_text(data, "mobileNumber"),
            email=_text(data, "email"),
            arrival_date=_text(data, "arrivalDate"),
            departure_date=_text(data, "departureDate"),
            has_visa_or_kitas=_flag(data, "hasVisaOrKitas"),
            visa_or_kitas_number=_text(data, "visaOrKitasNumber"),
            mode_of_transport=(_text(data, "modeOfTransport") or "AIR").upper(),
            purpose_of_travel=_text(data, "purposeOfTravel"),
            place_of_arrival=_text(data, "placeOfArrival"),
            type_of_air_transport=_text(data, "typeOfAirTransport"),
            flight_name=_text(data, "flightName"),
            flight_number=_text(data, "flightNumber"),
            type_of_vessel=_text(data, "typeOfVessel"),
            vessel_name=_text(data, "vesselName"),
            address_in_indonesia=_text(data, "addressInIndonesia"),
            has_symptoms=_flag(data, "hasSymptoms"),
            selected_symptoms=tuple(str(s) for s in data.get("selectedSymptoms") or ()),
            countries_visited=tuple(str(c) for c in data.get("countriesVisited") or ()),
            has_quarantine_items=_flag(data, "hasQuarantineItems"),
            has_goods_to_declare=_flag(data, "hasGoodsToDeclarate") if "hasGoodsToDeclarate" in data else _flag(data, "hasGoodsToDeclare"),
            declared_goods=tuple(DeclaredGood.from_dict(item) for item in goods),
            has_technology_devices=_flag(data, "hasTechnologyDevices"),
            baggage_count=_text(data, "baggageCount") or "0",
            consent_accurate=bool(_flag(data, "consentAccurate")),
            family_members=tuple(FamilyMember.from_dict(member) for member in members),
        )

    @property
    def is_group(self) -> bool:
        return len(self.family_members) > 0

    @property
    def traveller_count(self) -> int:
        return 1 + len(self.family_members)

    def validate(self) -> list[str]:
        problems: list[str] = []
        required = {
            "passportNumber": self.passport_number,
            "fullPassportName": self.full_passport_name,
            "nationality": self.nationality,
            "dateOfBirth": self.date_of_birth,
            "arrivalDate": self.arrival_date,
            "addressInIndonesia": self.address_in_indonesia,
        }
        for name, value in required.items():
            if not value:
                problems.append(f"{name}: required")

        for name, value in (
            ("dateOfBirth", self.date_of_birth),
            ("arrivalDate", self.arrival_date),
            ("departureDate", self.departure_date),
            ("passportExpiryDate", self.passport_expiry_date),
        ):
            if value and not _is_iso_date(value):
                problems.append(f"{name}: expected YYYY-MM-DD, got {value!r}")

        if self.mode_of_transport not in {"AIR", "SEA"}:
            problems.append(f"modeOfTransport: unsupported {self.mode_of_transport!r}")
        elif self.mode_of_transport == "AIR" and not self.flight_number:
            problems.append("flightNumber: required for AIR")
        elif self.mode_of_transport == "SEA" and not self.vessel_name:
            problems.append("vesselName: required for SEA")

        if self.has_visa_or_kitas and not self.visa_or_kitas_number:
            problems.append("visaOrKitasNumber: required when hasVisaOrKitas is true")

        for name, value in (
            ("hasGoodsToDeclarate", self.has_goods_to_declare),
            ("hasTechnologyDevices", self.has_technology_devices),
        ):
            if value is None:
                problems.append(f"{name}: answer required")

        if self.has_goods_to_declare and not self.declared_goods:
            problems.append("declaredGoods: at least one item required")

        if not self.consent_accurate:
            problems.append("consentAccurate: consent required")

        for index, member in enumerate(self.family_members):
            if not member.passport_number or not member.full_passport_name:
                problems.append(f"familyMembers[{index}]: passport number and name required")
            if member.has_visa_or_kitas and not member.visa_or_kitas_number:
                problems.append(f"familyMembers[{index}].visaOrKitasNumber: required")

        return problems


@dataclass(frozen=True)
class ValidationIssue:
    field_type: str
    locator: str
    issue: str


@dataclass(frozen=True)
class SubmissionArtifact:
    image_data: str
    arrival_card_number: str = ""
    passenger_name: str = ""
    passport_number: str = ""
    nationality: str = ""
    arrival_date: str = ""
    departure_date: str = ""
    status: str = "completed"
    image_format: str = "png"
    width: int = 256
    height: int = 256
    submission_time: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


@dataclass(frozen=True)
class ProgressEvent:
    step: str
    progress: int
    message: str
    timestamp: float


ProgressCallback = Callable[[ProgressEvent], None]


class ProgressReporter:
    """Emits milestone events; progress never goes backwards."""

    def __init__(self, callback: ProgressCallback | None = None, logger=None) -> None:
        self._callback = callback
        self._logger = logger
        self._last = 0
        self.events: list[ProgressEvent] = []

    def report(self, step: str, progress: int, message: str) -> ProgressEvent:
        self._last = max(self._last, min(100, max(0, progress)))
        event = ProgressEvent(step=step, progress=self._last, message=message, timestamp=time.time())
        self.events.append(event)
        if self._logger is not None:
            self._logger.info("[%s %d%%] %s", step, event.progress, message)
        if self._callback is not None:
            self._callback(event)
        return event


@dataclass(frozen=True)
class AutomationResult:
    ok: bool
    artifact: SubmissionArtifact | None = None
    error: AutomationError | None = None
    fallback_url: str = ""

    @classmethod
    def succeeded(cls, artifact: SubmissionArtifact) -> "AutomationResult":
        return cls(ok=True, artifact=artifact)

    @classmethod
    def failed(cls, error: AutomationError, fallback_url: str) -> "AutomationResult":
        return cls(ok=False, error=error, fallback_url=fallback_url)

    def to_dict(self) -> dict[str, Any]:
        if self.ok and self.artifact is not None:
            artifact = self.artifact
            return {
                "success": True,
                "qrCode": {
                    "imageData": artifact.image_data,
                    "format": artifact.image_format,
                    "size": {"width": artifact.width, "height": artifact.height},
                },
                "submissionDetails": {
                    "submissionId": artifact.arrival_card_number,
                    "submissionTime": artifact.submission_time,
                    "status": artifact.status,
                    "referenceNumber": artifact.arrival_card_number,
                    "passengerName": artifact.passenger_name,
                    "passportNumber": artifact.passport_number,
                    "nationality": artifact.nationality,
                    "arrivalDate": artifact.arrival_date,
                    "departureDate": artifact.departure_date,
                },
                "message": "Arrival card submitted successfully",
            }

        error = self.error or AutomationError("Unknown automation failure")
        return {
            "success": False,
            "error": {
                "code": error.code,
                "message": error.message,
                "step": error.step,
                "details": error.details,
            },
            "fallbackUrl": self.fallback_url,
        }
