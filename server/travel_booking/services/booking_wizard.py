"""
Three-step booking wizard.

The wizard holds the in-progress form state of one booking: room
quantities first, then one occupant record per traveller, then a
confirmation step. Each forward transition is guarded; a blocked
transition raises ValidationError and leaves the wizard untouched.
"""

from dataclasses import dataclass, field, fields
from datetime import date
from enum import IntEnum
from typing import Mapping, Optional

from ..core.exceptions import ValidationError
from . import pricing


class WizardStep(IntEnum):
    """Wizard steps in order."""
    SELECT_ROOMS = 1
    ENTER_OCCUPANTS = 2
    CONFIRM = 3
    SUBMITTED = 4


@dataclass
class OccupantDraft:
    """Occupant record as entered in the form."""

    name: str = ""
    gender: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    nik: Optional[str] = None
    passport_number: Optional[str] = None
    passport_expiry: Optional[date] = None
    birth_date: Optional[date] = None

    def is_complete(self) -> bool:
        return bool(self.name and self.name.strip()) and bool(self.gender)


OCCUPANT_FIELDS = frozenset(f.name for f in fields(OccupantDraft))


@dataclass
class BookingWizard:
    """
    Form state machine for one departure.

    Args:
        prices: Per-occupant price of each room type offered by the departure
    """

    prices: Mapping[str, int]
    quantities: dict[str, int] = field(default_factory=dict)
    occupants: list[OccupantDraft] = field(default_factory=list)
    step: WizardStep = WizardStep.SELECT_ROOMS

    def __post_init__(self):
        for room_type in self.prices:
            pricing.occupancy(room_type)
            self.quantities.setdefault(room_type, 0)

    @property
    def selections(self) -> list[pricing.RoomSelection]:
        """Room selections with a positive quantity."""
        return [
            pricing.RoomSelection(room_type=room_type, quantity=quantity, price=self.prices[room_type])
            for room_type, quantity in self.quantities.items()
            if quantity > 0
        ]

    @property
    def total_occupants(self) -> int:
        return pricing.total_occupants(self.selections)

    @property
    def total_price(self) -> int:
        return pricing.total_price(self.selections)

    def _require_step(self, *steps: WizardStep) -> None:
        if self.step not in steps:
            raise ValidationError(
                detail=f"Action is not available at step {self.step.name}",
                code="WIZARD_STEP",
            )

    def _require_offered(self, room_type: str) -> None:
        pricing.occupancy(room_type)
        if room_type not in self.prices:
            raise ValidationError(
                detail=f"Room type '{room_type}' is not offered for this departure",
                code="ROOM_TYPE_NOT_OFFERED",
            )

    def set_quantity(self, room_type: str, quantity: int) -> int:
        self._require_step(WizardStep.SELECT_ROOMS)
        self._require_offered(room_type)
        self.quantities[room_type] = max(0, quantity)
        return self.quantities[room_type]

    def adjust_quantity(self, room_type: str, delta: int) -> int:
        self._require_step(WizardStep.SELECT_ROOMS)
        self._require_offered(room_type)
        self.quantities[room_type] = pricing.adjust_quantity(self.quantities.get(room_type, 0), delta)
        return self.quantities[room_type]

    def update_occupant(self, index: int, **values) -> OccupantDraft:
        self._require_step(WizardStep.ENTER_OCCUPANTS)
        if not 0 <= index < len(self.occupants):
            raise ValidationError(detail=f"No occupant at position {index}", code="OCCUPANT_INDEX")
        unknown = set(values) - OCCUPANT_FIELDS
        if unknown:
            raise ValidationError(detail=f"Unknown occupant fields: {sorted(unknown)}", code="OCCUPANT_FIELD")

        occupant = self.occupants[index]
        for name, value in values.items():
            setattr(occupant, name, value)
        return occupant

    def next(self) -> WizardStep:
        """Advance one step if the current step's guard holds."""
        if self.step == WizardStep.SELECT_ROOMS:
            occupant_count = self.total_occupants
            if occupant_count <= 0:
                raise ValidationError(detail="Select at least one room", code="NO_ROOMS_SELECTED")
            if len(self.occupants) != occupant_count:
                self.occupants = [OccupantDraft() for _ in range(occupant_count)]
            self.step = WizardStep.ENTER_OCCUPANTS

        elif self.step == WizardStep.ENTER_OCCUPANTS:
            incomplete = [i for i, occupant in enumerate(self.occupants) if not occupant.is_complete()]
            if incomplete:
                raise ValidationError(
                    detail="Every occupant needs a name and gender",
                    code="OCCUPANTS_INCOMPLETE",
                    errors={"positions": incomplete},
                )
            self.step = WizardStep.CONFIRM

        else:
            # CONFIRM moves on only through mark_submitted()
            raise ValidationError(
                detail=f"Cannot advance from step {self.step.name}",
                code="WIZARD_STEP",
            )
        return self.step

    def back(self) -> WizardStep:
        if self.step in (WizardStep.ENTER_OCCUPANTS, WizardStep.CONFIRM):
            self.step = WizardStep(self.step - 1)
        return self.step

    def mark_submitted(self) -> WizardStep:
        self._require_step(WizardStep.CONFIRM)
        self.step = WizardStep.SUBMITTED
        return self.step
