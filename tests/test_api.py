"""End-to-end tests through the HTTP API."""

from datetime import date

from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import StaticPool

from pilgrim_housing import main
from pilgrim_housing.database import build_engine
from pilgrim_housing.repositories.room_repo import RoomRepository
from pilgrim_housing.schemas.reservation import ReservationStatus
from tests.factories import add_building, add_reservation, add_room, at


async def seed_rooms(sessionmaker, capacities=(("101", 2), ("102", 2))):
    async with sessionmaker() as session:
        building = await add_building(session)
        rooms = [await add_room(session, building, number, bed_capacity=cap) for number, cap in capacities]
    return building, rooms


async def seed_reservation(sessionmaker, **kwargs):
    async with sessionmaker() as session:
        return await add_reservation(session, **kwargs)


class TestStartup:
    async def test_lifespan_creates_schema_from_models(self, monkeypatch):
        engine = build_engine("sqlite+aiosqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})
        monkeypatch.setattr(main, "engine", engine)
        monkeypatch.setattr(main.settings, "database_url", "sqlite+aiosqlite://")

        async with main.lifespan(main.app):
            async with engine.connect() as conn:
                columns = await conn.run_sync(
                    lambda sync_conn: {c["name"] for c in inspect(sync_conn).get_columns("rooms")}
                )
        assert {"status", "issue_notes", "last_cleaned_at"} <= columns


class TestCatalogEndpoints:
    async def test_building_crud(self, client):
        response = await client.post("/buildings", json={"name": "Al Safa", "total_floors": 5})
        assert response.status_code == 201
        building_id = response.json()["id"]

        response = await client.patch(f"/buildings/{building_id}", json={"description": "Near gate 4"})
        assert response.json()["description"] == "Near gate 4"

        response = await client.delete(f"/buildings/{building_id}")
        assert response.status_code == 204
        response = await client.get(f"/buildings/{building_id}")
        assert response.status_code == 404
        assert response.json()["error"] == "NotFound"

    async def test_field_validation(self, client):
        response = await client.post("/buildings", json={"name": "Al Safa", "total_floors": 0})
        assert response.status_code == 422

    async def test_patch_null_clears_optional_fields(self, client):
        building_id = (await client.post("/buildings", json={"name": "Al Safa", "address": "Ajyad St"})).json()["id"]
        response = await client.patch(f"/buildings/{building_id}", json={"address": None})
        assert response.status_code == 200
        assert response.json()["address"] is None

        room_id = (await client.post("/rooms", json={"building_id": building_id, "room_number": "101", "notes": "Sea view"})).json()["id"]
        response = await client.patch(f"/rooms/{room_id}", json={"notes": None})
        assert response.status_code == 200
        assert response.json()["notes"] is None
        assert (await client.get(f"/rooms/{room_id}")).json()["notes"] is None

    async def test_patch_null_refused_for_required_fields(self, client):
        building_id = (await client.post("/buildings", json={"name": "Al Safa"})).json()["id"]
        room_id = (await client.post("/rooms", json={"building_id": building_id, "room_number": "101"})).json()["id"]

        response = await client.patch(f"/rooms/{room_id}", json={"room_number": None})
        assert response.status_code == 422
        assert response.json()["details"]["fields"] == ["room_number"]
        response = await client.patch(f"/buildings/{building_id}", json={"name": None})
        assert response.status_code == 422
        assert (await client.get(f"/rooms/{room_id}")).json()["room_number"] == "101"

    async def test_store_failure_on_read_is_503(self, client, monkeypatch):
        async def locked(self, **filters):
            raise OperationalError("SELECT rooms", {}, Exception("database is locked"))

        monkeypatch.setattr(RoomRepository, "list_rooms", locked)
        response = await client.get("/occupancy")
        assert response.status_code == 503
        assert response.json()["error"] == "BackingStoreError"
        assert "database is locked" in response.json()["message"]

    async def test_bulk_rooms(self, client):
        building_id = (await client.post("/buildings", json={"name": "Al Safa"})).json()["id"]

        response = await client.post(f"/buildings/{building_id}/rooms/bulk", json={"spec": "101-103(2)", "floor": 1})
        assert response.status_code == 201
        assert [r["room_number"] for r in response.json()] == ["101", "102", "103"]

        response = await client.get("/buildings")
        assert response.json()[0]["bed_count"] == 6

    async def test_bulk_parse_error(self, client):
        building_id = (await client.post("/buildings", json={"name": "Al Safa"})).json()["id"]
        response = await client.post(f"/buildings/{building_id}/rooms/bulk", json={"spec": "bad(("})
        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "ParseError"
        assert body["details"]["token"] == "bad(("

        response = await client.get("/rooms", params={"building_id": building_id})
        assert response.json() == []

    async def test_bulk_preview(self, client):
        response = await client.post("/rooms/bulk/preview", json={"spec": "A1-A3(4)"})
        assert response.json()["total_beds"] == 12

    async def test_room_transitions(self, client, sessionmaker):
        _, rooms = await seed_rooms(sessionmaker)
        room_id = rooms[0].id

        response = await client.post(f"/rooms/{room_id}/transitions", json={"action": "report_issue", "note": "Leak"})
        assert response.json()["status"] == "maintenance"
        assert response.json()["issue_notes"] == "Leak"

        response = await client.post(f"/rooms/{room_id}/transitions", json={"action": "mark_cleaned"})
        assert response.status_code == 422
        assert response.json()["error"] == "InvalidTransition"

        response = await client.post(f"/rooms/{room_id}/transitions", json={"action": "clear_maintenance"})
        assert response.json()["status"] == "available"


class TestAllocationFlow:
    async def test_assign_commit_check_in_and_out(self, client, sessionmaker):
        _, (room_101, room_102) = await seed_rooms(sessionmaker)
        reservation = await seed_reservation(sessionmaker, names=["Amina", "Yusuf", "Khadija"])

        response = await client.post("/allocations", json={"reservation_id": reservation.id})
        assert response.status_code == 201
        body = response.json()
        sid = body["session_id"]
        assert body["selected"] == 0
        assert body["pending_count"] == 3
        assert body["target_date"] == date.today().isoformat()

        await client.post(f"/allocations/{sid}/assign", json={"room_id": room_101.id})
        body = (await client.post(f"/allocations/{sid}/assign", json={"room_id": room_101.id})).json()
        assert [m["bed_label"] for m in body["members"][:2]] == ["A", "B"]
        assert body["selected"] == 2

        response = await client.post(f"/allocations/{sid}/assign", json={"room_id": room_101.id})
        assert response.status_code == 409
        assert response.json()["error"] == "CapacityExceeded"

        response = await client.post(f"/allocations/{sid}/commit")
        assert response.status_code == 409
        assert response.json()["details"]["pending"] == 1

        await client.post(f"/allocations/{sid}/assign", json={"room_id": room_102.id})
        response = await client.post(f"/allocations/{sid}/commit")
        assert response.status_code == 200
        assert response.json()["assigned"] == 3
        assert (await client.get(f"/allocations/{sid}")).status_code == 404

        approved = (await client.get("/reservations/approved")).json()
        beds = [(m["room_number"], m["bed_label"]) for m in approved[0]["members"]]
        assert beds == [("101", "A"), ("101", "B"), ("102", "A")]

        # nobody has arrived yet, so nothing shows as occupied
        occupancy = (await client.get("/occupancy", params={"date": date.today().isoformat()})).json()
        assert occupancy["occupied_beds"] == 0

        response = await client.post(f"/reservations/{reservation.id}/members/0/checkin")
        assert response.json()["checkin_status"] == "completed"
        assert (await client.get(f"/rooms/{room_101.id}")).json()["status"] == "occupied"

        occupancy = (await client.get("/occupancy", params={"date": date.today().isoformat()})).json()
        assert occupancy["occupied_beds"] == 1
        entry = next(r for r in occupancy["rooms"] if r["room_id"] == room_101.id)
        assert entry["occupied_beds"] == ["A"]
        assert entry["free_beds"] == ["B"]

        response = await client.post(f"/reservations/{reservation.id}/members/0/checkout")
        assert response.json()["bed_label"] is None
        assert (await client.get(f"/rooms/{room_101.id}")).json()["status"] == "cleaning"

        housekeeping = (await client.get("/rooms/housekeeping")).json()
        assert [r["id"] for r in housekeeping] == [room_101.id]

        response = await client.post(f"/rooms/{room_101.id}/cleaned")
        assert response.json()["status"] == "available"
        assert response.json()["last_cleaned_at"] is not None

    async def test_concurrent_commit_conflicts(self, client, sessionmaker):
        _, (room,) = await seed_rooms(sessionmaker, capacities=(("101", 1),))
        first = await seed_reservation(sessionmaker, names=["Amina"])
        second = await seed_reservation(sessionmaker, names=["Yusuf"], arrival=at(1), departure=at(5))

        sid_first = (await client.post("/allocations", json={"reservation_id": first.id})).json()["session_id"]
        sid_second = (await client.post("/allocations", json={"reservation_id": second.id})).json()["session_id"]
        await client.post(f"/allocations/{sid_first}/assign", json={"room_id": room.id})
        await client.post(f"/allocations/{sid_second}/assign", json={"room_id": room.id})

        assert (await client.post(f"/allocations/{sid_first}/commit")).status_code == 200
        response = await client.post(f"/allocations/{sid_second}/commit")
        assert response.status_code == 409
        assert response.json()["error"] == "Conflict"

        # a fresh session sees the held bed and refuses the full room
        sid = (await client.post("/allocations", json={"reservation_id": second.id})).json()["session_id"]
        response = await client.post(f"/allocations/{sid}/assign", json={"room_id": room.id})
        assert response.json()["error"] == "CapacityExceeded"

    async def test_disjoint_stays_share_a_bed(self, client, sessionmaker):
        _, (room,) = await seed_rooms(sessionmaker, capacities=(("101", 1),))
        first = await seed_reservation(sessionmaker, names=["Amina"], arrival=at(0), departure=at(3))
        second = await seed_reservation(sessionmaker, names=["Yusuf"], arrival=at(3), departure=at(6))

        for reservation in (first, second):
            sid = (await client.post("/allocations", json={"reservation_id": reservation.id})).json()["session_id"]
            body = (await client.post(f"/allocations/{sid}/assign", json={"room_id": room.id})).json()
            assert body["members"][0]["bed_label"] == "A"
            assert (await client.post(f"/allocations/{sid}/commit")).status_code == 200

    async def test_select_unassign_and_close(self, client, sessionmaker):
        _, (room, _) = await seed_rooms(sessionmaker)
        reservation = await seed_reservation(sessionmaker, names=["Amina", "Yusuf"])
        sid = (await client.post("/allocations", json={"reservation_id": reservation.id})).json()["session_id"]

        body = (await client.post(f"/allocations/{sid}/select", json={"member_index": 1})).json()
        assert body["selected"] == 1
        body = (await client.post(f"/allocations/{sid}/assign", json={"room_id": room.id})).json()
        assert body["members"][1]["bed_label"] == "A"

        body = (await client.delete(f"/allocations/{sid}/members/1")).json()
        assert body["assigned_count"] == 0

        assert (await client.delete(f"/allocations/{sid}")).status_code == 204
        assert (await client.get(f"/allocations/{sid}")).status_code == 404

    async def test_pending_reservation_cannot_be_allocated(self, client, sessionmaker):
        reservation = await seed_reservation(sessionmaker, names=["Amina"], status=ReservationStatus.PENDING)
        response = await client.post("/allocations", json={"reservation_id": reservation.id})
        assert response.status_code == 422

    async def test_check_in_without_bed_refused(self, client, sessionmaker):
        reservation = await seed_reservation(sessionmaker, names=["Amina"])
        response = await client.post(f"/reservations/{reservation.id}/members/0/checkin")
        assert response.status_code == 422

    async def test_building_delete_guarded_after_commit(self, client, sessionmaker):
        building, (room, _) = await seed_rooms(sessionmaker)
        reservation = await seed_reservation(sessionmaker, names=["Amina"])
        sid = (await client.post("/allocations", json={"reservation_id": reservation.id})).json()["session_id"]
        await client.post(f"/allocations/{sid}/assign", json={"room_id": room.id})
        await client.post(f"/allocations/{sid}/commit")

        response = await client.delete(f"/buildings/{building.id}")
        assert response.status_code == 409
        assert response.json()["details"]["beds"] == ["101/A"]

    async def test_reallocate_after_partial_checkout(self, client, sessionmaker):
        _, (room_101, room_102) = await seed_rooms(sessionmaker)
        reservation = await seed_reservation(sessionmaker, names=["Amina", "Yusuf"])
        sid = (await client.post("/allocations", json={"reservation_id": reservation.id})).json()["session_id"]
        await client.post(f"/allocations/{sid}/assign", json={"room_id": room_101.id})
        await client.post(f"/allocations/{sid}/assign", json={"room_id": room_101.id})
        assert (await client.post(f"/allocations/{sid}/commit")).status_code == 200

        await client.post(f"/reservations/{reservation.id}/members/0/checkin")
        await client.post(f"/reservations/{reservation.id}/members/0/checkout")

        body = (await client.post("/allocations", json={"reservation_id": reservation.id})).json()
        sid = body["session_id"]
        assert body["pending_count"] == 0
        assert body["members"][0]["checked_out"] is True

        response = await client.post(f"/allocations/{sid}/assign", json={"room_id": room_102.id, "member_index": 0})
        assert response.status_code == 422

        await client.post(f"/allocations/{sid}/assign", json={"room_id": room_102.id, "member_index": 1})
        response = await client.post(f"/allocations/{sid}/commit")
        assert response.status_code == 200
        assert response.json()["assigned"] == 1

        members = (await client.get("/reservations/approved")).json()[0]["members"]
        assert members[0]["room_id"] is None
        assert members[0]["bed_label"] is None
        assert members[0]["checkout_status"] == "completed"
        assert (members[1]["room_number"], members[1]["bed_label"]) == ("102", "A")

    async def test_cleaned_room_with_guests_in_house_is_occupied(self, client, sessionmaker):
        _, (room, _) = await seed_rooms(sessionmaker)
        reservation = await seed_reservation(sessionmaker, names=["Amina", "Yusuf"])
        sid = (await client.post("/allocations", json={"reservation_id": reservation.id})).json()["session_id"]
        await client.post(f"/allocations/{sid}/assign", json={"room_id": room.id})
        await client.post(f"/allocations/{sid}/assign", json={"room_id": room.id})
        await client.post(f"/allocations/{sid}/commit")

        await client.post(f"/reservations/{reservation.id}/members/0/checkin")
        await client.post(f"/reservations/{reservation.id}/members/1/checkin")
        await client.post(f"/reservations/{reservation.id}/members/0/checkout")
        assert (await client.get(f"/rooms/{room.id}")).json()["status"] == "cleaning"

        response = await client.post(f"/rooms/{room.id}/cleaned")
        assert response.json()["status"] == "occupied"
        assert response.json()["last_cleaned_at"] is not None
