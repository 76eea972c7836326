"""
Tests for the admin content endpoints.
"""

import io

from caliquest.core.database import DatabaseManager
from caliquest.models import AdminLog, CompletionRecord, Exercise, Level, Map
from caliquest.services.progression import ProgressionEngine

from conftest import api


def upload_exercise(client, headers, level_id, name="Pull-ups", filename="pullups.mp4",
                    payload=b"fake video bytes", order_index=None):
    data = {"level_id": str(level_id), "name": name, "description": "Hang and pull"}
    if order_index is not None:
        data["order_index"] = str(order_index)
    return client.post(
        api("/admin/exercises/"),
        data=data,
        files={"video": (filename, io.BytesIO(payload), "video/mp4")},
        headers=headers
    )


class TestAccessControl:

    def test_player_cannot_use_admin_endpoints(self, client, world, player_headers):
        response = client.get(api("/admin/maps/"), headers=player_headers)
        assert response.status_code == 403
        assert response.json()["error_code"] == "ADMIN_REQUIRED"

        response = client.delete(api(f"/admin/maps/{world.forest.id}"), headers=player_headers)
        assert response.status_code == 403

    def test_anonymous_cannot_use_admin_endpoints(self, client, db):
        assert client.get(api("/admin/dashboard")).status_code == 401

    def test_granted_admin_gets_access_on_next_request(self, client, db, player, player_headers):
        assert DatabaseManager.grant_admin("nobody@example.com") is False
        assert DatabaseManager.grant_admin(player.email) is True

        response = client.get(api("/admin/maps/"), headers=player_headers)
        assert response.status_code == 200

    def test_admin_dashboard(self, client, world, admin_headers):
        response = client.get(api("/admin/dashboard"), headers=admin_headers)

        assert response.status_code == 200
        stats = response.json()["statistics"]
        assert stats["maps"] == 2
        assert stats["levels"] == 5
        assert stats["users"] == 1


class TestMaps:

    def test_create_appends_after_last_map(self, client, world, admin_headers):
        response = client.post(
            api("/admin/maps/"), json={"name": "Desert"}, headers=admin_headers
        )

        assert response.status_code == 201
        assert response.json()["order_index"] == 2

        names = [m["name"] for m in client.get(api("/admin/maps/"), headers=admin_headers).json()]
        assert names == ["Forest", "Mountain", "Desert"]

    def test_first_map_gets_index_zero(self, client, db, admin_headers):
        response = client.post(
            api("/admin/maps/"), json={"name": "Start"}, headers=admin_headers
        )
        assert response.json()["order_index"] == 0

    def test_update_map(self, client, world, admin_headers):
        response = client.put(
            api(f"/admin/maps/{world.forest.id}"),
            json={"description": "Renamed region"},
            headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["description"] == "Renamed region"
        assert response.json()["name"] == "Forest"

    def test_update_unknown_map(self, client, db, admin_headers):
        response = client.put(api("/admin/maps/9999"), json={"name": "X"}, headers=admin_headers)
        assert response.status_code == 404

    def test_changes_are_audited(self, client, db, admin_headers):
        client.post(api("/admin/maps/"), json={"name": "Desert"}, headers=admin_headers)

        logs = client.get(api("/admin/logs"), headers=admin_headers).json()

        assert logs["total"] == 1
        assert logs["logs"][0]["action"] == "create"
        assert logs["logs"][0]["entity_type"] == "map"

    def test_delete_map_cascades(self, client, db, world, player, admin_headers, storage):
        level = world.forest_levels[0]
        upload_exercise(client, admin_headers, level.id)
        video_key = db.query(Exercise).one().video_key
        ProgressionEngine(db).complete_level(player.id, level.id)

        response = client.delete(api(f"/admin/maps/{world.forest.id}"), headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["removed"] == {"levels": 3, "exercises": 1, "completions": 2}

        db.expire_all()
        assert db.query(Map).count() == 1
        assert db.query(Level).count() == 2
        assert db.query(Exercise).count() == 0
        assert db.query(CompletionRecord).count() == 0
        assert not storage.exists(video_key)
        assert db.query(AdminLog).filter(AdminLog.action == "delete").count() == 1

    def test_deleting_map_reopens_progression_for_remaining_maps(self, client, db, world, player,
                                                                 admin_headers):
        client.delete(api(f"/admin/maps/{world.forest.id}"), headers=admin_headers)

        db.expire_all()
        overview = ProgressionEngine(db).map_overview(player.id)
        assert [(m.name, a.unlocked) for m, a in overview] == [("Mountain", True)]


class TestLevels:

    def test_list_levels_of_map(self, client, world, admin_headers):
        response = client.get(
            api("/admin/levels/"), params={"map_id": world.forest.id}, headers=admin_headers
        )
        assert [level["name"] for level in response.json()] == ["Forest 1", "Forest 2", "Forest 3"]

    def test_create_level_in_unknown_map(self, client, db, admin_headers):
        response = client.post(
            api("/admin/levels/"), json={"map_id": 9999, "name": "Lost"}, headers=admin_headers
        )
        assert response.status_code == 404

    def test_create_level_appends_within_map(self, client, world, admin_headers):
        response = client.post(
            api("/admin/levels/"),
            json={"map_id": world.mountain.id, "name": "Summit"},
            headers=admin_headers
        )
        assert response.status_code == 201
        assert response.json()["order_index"] == 2

    def test_delete_level_removes_its_completions_only(self, client, db, world, player,
                                                       admin_headers):
        engine = ProgressionEngine(db)
        engine.complete_level(player.id, world.forest_levels[0].id)

        response = client.delete(
            api(f"/admin/levels/{world.forest_levels[0].id}"), headers=admin_headers
        )

        assert response.status_code == 200
        db.expire_all()
        remaining = db.query(CompletionRecord).all()
        assert [(r.unit_kind, r.unit_id) for r in remaining] == [("map", world.forest.id)]

    def test_delete_unknown_level(self, client, db, admin_headers):
        assert client.delete(api("/admin/levels/9999"), headers=admin_headers).status_code == 404


class TestExercises:

    def test_upload_stores_video_and_creates_exercise(self, client, db, world, admin_headers,
                                                      storage):
        level = world.forest_levels[0]

        response = upload_exercise(client, admin_headers, level.id)

        assert response.status_code == 201
        body = response.json()
        assert body["level_id"] == level.id
        assert body["order_index"] == 0
        assert body["video_url"].startswith("/media/exercises/")
        assert body["video_url"].endswith(".mp4")

        key = db.query(Exercise).one().video_key
        assert storage.exists(key)
        assert storage.path_for(key).read_bytes() == b"fake video bytes"

    def test_second_upload_is_ordered_after_first(self, client, world, admin_headers, storage):
        level = world.forest_levels[0]
        upload_exercise(client, admin_headers, level.id, name="First")
        upload_exercise(client, admin_headers, level.id, name="Second")

        listed = client.get(
            api("/admin/exercises/"), params={"level_id": level.id}, headers=admin_headers
        ).json()

        assert [(e["name"], e["order_index"]) for e in listed] == [("First", 0), ("Second", 1)]

    def test_rejects_unsupported_file_type(self, client, db, world, admin_headers, storage):
        response = upload_exercise(
            client, admin_headers, world.forest_levels[0].id, filename="notes.txt"
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "UPLOAD_REJECTED"
        assert db.query(Exercise).count() == 0

    def test_rejects_oversized_video(self, client, db, world, admin_headers, storage):
        response = upload_exercise(
            client, admin_headers, world.forest_levels[0].id, payload=b"x" * 2048
        )

        assert response.status_code == 400
        assert not any((storage.root / "exercises").glob("*"))

    def test_upload_to_unknown_level(self, client, db, admin_headers, storage):
        response = upload_exercise(client, admin_headers, 9999)
        assert response.status_code == 404

    def test_delete_exercise_removes_video(self, client, db, world, admin_headers, storage):
        exercise_id = upload_exercise(client, admin_headers, world.forest_levels[0].id).json()["id"]
        key = db.query(Exercise).one().video_key

        response = client.delete(api(f"/admin/exercises/{exercise_id}"), headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["entity_type"] == "exercise"
        assert not storage.exists(key)
        db.expire_all()
        assert db.query(Exercise).count() == 0
