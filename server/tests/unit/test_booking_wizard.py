"""Unit tests for the booking wizard state machine."""

import pytest

from travel_booking.core.exceptions import ValidationError
from travel_booking.services.booking_wizard import BookingWizard, WizardStep

PRICES = {"quad": 20_000_000, "triple": 22_000_000, "double": 25_000_000}


def _wizard_at_occupants(**quantities) -> BookingWizard:
    wizard = BookingWizard(prices=PRICES)
    for room_type, quantity in quantities.items():
        wizard.set_quantity(room_type, quantity)
    wizard.next()
    return wizard


def test_new_wizard_starts_with_zero_quantities():
    wizard = BookingWizard(prices=PRICES)

    assert wizard.step == WizardStep.SELECT_ROOMS
    assert wizard.quantities == {"quad": 0, "triple": 0, "double": 0}
    assert wizard.total_occupants == 0
    assert wizard.total_price == 0


def test_unknown_room_type_in_price_list_is_rejected():
    with pytest.raises(ValidationError):
        BookingWizard(prices={"penthouse": 1})


def test_cannot_advance_without_rooms():
    """Step 1 is blocked while no occupant is selected."""
    wizard = BookingWizard(prices=PRICES)

    with pytest.raises(ValidationError) as exc_info:
        wizard.next()

    assert exc_info.value.problem_details["code"] == "NO_ROOMS_SELECTED"
    assert wizard.step == WizardStep.SELECT_ROOMS


def test_adjust_quantity_clamps_at_zero():
    wizard = BookingWizard(prices=PRICES)

    assert wizard.adjust_quantity("quad", 1) == 1
    assert wizard.adjust_quantity("quad", -3) == 0


def test_room_type_not_offered_is_rejected():
    wizard = BookingWizard(prices=PRICES)

    with pytest.raises(ValidationError) as exc_info:
        wizard.set_quantity("single", 1)

    assert exc_info.value.problem_details["code"] == "ROOM_TYPE_NOT_OFFERED"


def test_advancing_allocates_one_occupant_per_traveller():
    """One quad and one double need six occupant records."""
    wizard = _wizard_at_occupants(quad=1, double=1)

    assert wizard.step == WizardStep.ENTER_OCCUPANTS
    assert len(wizard.occupants) == 6
    assert wizard.total_price == 4 * 20_000_000 + 2 * 25_000_000


def test_cannot_confirm_with_incomplete_occupants():
    """Step 2 is blocked until every occupant has a name and gender."""
    wizard = _wizard_at_occupants(double=1)
    wizard.update_occupant(0, name="Siti Aminah", gender="female")
    wizard.update_occupant(1, name="   ", gender="male")

    with pytest.raises(ValidationError) as exc_info:
        wizard.next()

    assert exc_info.value.problem_details["errors"] == {"positions": [1]}
    assert wizard.step == WizardStep.ENTER_OCCUPANTS


def test_complete_occupants_reach_confirmation():
    wizard = _wizard_at_occupants(double=1)
    wizard.update_occupant(0, name="Siti Aminah", gender="female")
    wizard.update_occupant(1, name="Ahmad Fauzi", gender="male")

    assert wizard.next() == WizardStep.CONFIRM
    assert wizard.mark_submitted() == WizardStep.SUBMITTED


def test_confirm_step_only_advances_by_submission():
    wizard = _wizard_at_occupants(double=1)
    wizard.update_occupant(0, name="A", gender="female")
    wizard.update_occupant(1, name="B", gender="male")
    wizard.next()

    with pytest.raises(ValidationError):
        wizard.next()


def test_going_back_keeps_occupants_when_count_unchanged():
    wizard = _wizard_at_occupants(double=1)
    wizard.update_occupant(0, name="Siti Aminah", gender="female")

    assert wizard.back() == WizardStep.SELECT_ROOMS
    wizard.next()

    assert wizard.occupants[0].name == "Siti Aminah"


def test_changing_room_count_resets_occupants():
    wizard = _wizard_at_occupants(double=1)
    wizard.update_occupant(0, name="Siti Aminah", gender="female")
    wizard.back()
    wizard.set_quantity("quad", 1)
    wizard.next()

    assert len(wizard.occupants) == 6
    assert all(occupant.name == "" for occupant in wizard.occupants)


def test_quantities_locked_outside_room_step():
    wizard = _wizard_at_occupants(quad=1)

    with pytest.raises(ValidationError) as exc_info:
        wizard.set_quantity("quad", 2)

    assert exc_info.value.problem_details["code"] == "WIZARD_STEP"


def test_update_occupant_rejects_bad_index_and_fields():
    wizard = _wizard_at_occupants(double=1)

    with pytest.raises(ValidationError):
        wizard.update_occupant(5, name="X")
    with pytest.raises(ValidationError):
        wizard.update_occupant(0, shoe_size=42)


def test_back_from_first_step_is_a_no_op():
    wizard = BookingWizard(prices=PRICES)
    assert wizard.back() == WizardStep.SELECT_ROOMS
