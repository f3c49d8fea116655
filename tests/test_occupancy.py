"""Tests for the derived occupancy index."""

from pilgrim_housing.schemas.reservation import ReservationStatus
from pilgrim_housing.services import occupancy
from pilgrim_housing.services.occupancy import StayWindow
from tests.factories import at, day, make_member, make_reservation, make_room


def in_house(position=0, room_id=1, bed_label="A", room_number="101"):
    return make_member(position, room_id=room_id, room_number=room_number, bed_label=bed_label, checked_in=True)


class TestStayWindow:
    def test_half_open(self):
        window = StayWindow(day(0), day(3))
        assert window.contains(day(0))
        assert window.contains(day(2))
        assert not window.contains(day(3))
        assert not window.contains(day(-1))

    def test_unknown_window_contains_everything(self):
        assert StayWindow(None, day(3)).contains(day(10))
        assert StayWindow(day(0), None).contains(day(-5))

    def test_unknown_target_date_counts_as_inside(self):
        assert StayWindow(day(0), day(3)).contains(None)

    def test_overlap(self):
        assert StayWindow(day(0), day(4)).overlaps(StayWindow(day(3), day(6)))
        assert not StayWindow(day(0), day(3)).overlaps(StayWindow(day(3), day(6)))
        assert StayWindow(day(0), day(3)).overlaps(StayWindow(None, None))

    def test_of_uses_calendar_days(self):
        window = StayWindow.of(make_reservation(arrival=at(1, hour=23), departure=at(2, hour=1)))
        assert window == StayWindow(day(1), day(2))


class TestCompute:
    def test_checked_in_member_occupies_bed(self):
        rooms = [make_room()]
        reservations = [make_reservation(members=[in_house()])]
        assert occupancy.compute(day(1), rooms, reservations) == {1: {"A"}}

    def test_outside_window_is_free(self):
        rooms = [make_room()]
        reservations = [make_reservation(members=[in_house()])]
        assert occupancy.compute(day(3), rooms, reservations) == {}
        assert occupancy.compute(day(-1), rooms, reservations) == {}

    def test_not_checked_in_is_not_counted(self):
        rooms = [make_room()]
        member = make_member(0, room_id=1, room_number="101", bed_label="A")
        assert occupancy.compute(day(1), rooms, [make_reservation(members=[member])]) == {}

    def test_checked_out_is_not_counted(self):
        rooms = [make_room()]
        member = make_member(0, room_id=1, room_number="101", bed_label="A", checked_in=True, checked_out=True)
        assert occupancy.compute(day(1), rooms, [make_reservation(members=[member])]) == {}

    def test_inactive_reservations_ignored(self):
        rooms = [make_room()]
        for status in (ReservationStatus.PENDING, ReservationStatus.CANCELLED, ReservationStatus.COMPLETED):
            reservations = [make_reservation(members=[in_house()], status=status)]
            assert occupancy.compute(day(1), rooms, reservations) == {}

    def test_confirmed_counts(self):
        rooms = [make_room()]
        reservations = [make_reservation(members=[in_house()], status=ReservationStatus.CONFIRMED)]
        assert occupancy.compute(day(1), rooms, reservations) == {1: {"A"}}

    def test_unknown_departure_is_fail_safe(self):
        rooms = [make_room()]
        reservation = make_reservation(members=[in_house()]).model_copy(update={"departure_at": None})
        assert occupancy.compute(day(30), rooms, [reservation]) == {1: {"A"}}

    def test_several_members_and_rooms(self):
        rooms = [make_room(1, "101"), make_room(2, "102")]
        members = [in_house(0, 1, "A"), in_house(1, 1, "B"), in_house(2, 2, "A", "102")]
        assert occupancy.compute(day(0), rooms, [make_reservation(members=members)]) == {1: {"A", "B"}, 2: {"A"}}

    def test_scoped_to_candidate_rooms(self):
        rooms = [make_room(2, "102")]
        reservations = [make_reservation(members=[in_house()])]
        assert occupancy.compute(day(1), rooms, reservations) == {}

    def test_room_number_only_matches_every_candidate(self):
        rooms = [make_room(1, "101", building_id=1), make_room(2, "101", building_id=2), make_room(3, "102")]
        member = make_member(0, room_number="101", bed_label="B", checked_in=True)
        assert occupancy.compute(day(1), rooms, [make_reservation(members=[member])]) == {1: {"B"}, 2: {"B"}}

    def test_excluded_reservation(self):
        rooms = [make_room()]
        reservations = [make_reservation(id=7, members=[in_house()])]
        assert occupancy.compute(day(1), rooms, reservations, exclude_reservation_id=7) == {}


class TestHolds:
    def test_overlapping_assignment_holds_bed_before_check_in(self):
        rooms = [make_room()]
        member = make_member(0, room_id=1, room_number="101", bed_label="A")
        reservations = [make_reservation(members=[member])]
        assert occupancy.compute_holds(StayWindow(day(2), day(5)), rooms, reservations) == {1: {"A"}}

    def test_disjoint_stay_does_not_hold(self):
        rooms = [make_room()]
        member = make_member(0, room_id=1, room_number="101", bed_label="A")
        reservations = [make_reservation(members=[member])]
        assert occupancy.compute_holds(StayWindow(day(3), day(6)), rooms, reservations) == {}

    def test_checked_out_member_releases_hold(self):
        rooms = [make_room()]
        member = make_member(0, room_id=1, room_number="101", bed_label="A", checked_in=True, checked_out=True)
        reservations = [make_reservation(members=[member])]
        assert occupancy.compute_holds(StayWindow(day(0), day(2)), rooms, reservations) == {}

    def test_merge(self):
        merged = occupancy.merge({1: {"A"}}, {1: {"B"}, 2: {"A"}}, {})
        assert merged == {1: {"A", "B"}, 2: {"A"}}
