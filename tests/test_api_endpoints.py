"""Integration tests for API endpoints."""

from datetime import timedelta

from taskseries.models.task import Recurrence, TaskStatus


def _iso(dt):
    return dt.isoformat()


class TestAuth:
    def test_missing_token(self, test_client):
        assert test_client.get("/tasks").status_code == 401

    def test_invalid_token(self, test_client):
        response = test_client.get("/tasks", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401

    def test_health_is_public(self, test_client):
        assert test_client.get("/health").json()["status"] == "healthy"


class TestTaskEndpoints:
    def test_create_and_list(self, test_client, auth_headers, today_start):
        start = today_start + timedelta(hours=9)
        response = test_client.post(
            "/tasks",
            headers=auth_headers,
            json={
                "title": "Stretch",
                "startTime": _iso(start),
                "endTime": _iso(start + timedelta(minutes=30)),
                "recurrence": "daily",
                "checklist": [{"text": "neck"}],
            },
        )
        assert response.status_code == 201
        task = response.json()["task"]
        assert task["title"] == "Stretch"
        assert task["status"] == "todo"
        assert task["recurrence"] == "daily"
        assert task["recurringTemplateId"] is None
        assert task["checklist"][0]["completed"] is False

        listed = test_client.get("/tasks", headers=auth_headers).json()["tasks"]
        assert [t["id"] for t in listed] == [task["id"]]

    def test_get_unknown_task(self, test_client, auth_headers):
        assert test_client.get("/tasks/nonexistent-id", headers=auth_headers).status_code == 404

    def test_patch(self, test_client, auth_headers, seed_task):
        task = seed_task()
        response = test_client.patch(f"/tasks/{task.id}", headers=auth_headers, json={"title": "Renamed"})
        assert response.status_code == 200
        assert response.json()["persisted"] is True
        assert response.json()["task"]["title"] == "Renamed"

    def test_patch_rejects_unknown_fields(self, test_client, auth_headers, seed_task):
        task = seed_task()
        response = test_client.patch(f"/tasks/{task.id}", headers=auth_headers, json={"colour": "red"})
        assert response.status_code == 422

    def test_put_completion_spawns_next_instance(self, test_client, auth_headers, seed_task):
        task = seed_task(recurrence=Recurrence.DAILY)
        body = task.model_dump(by_alias=True, mode="json")
        body["status"] = TaskStatus.DONE.value

        response = test_client.put(f"/tasks/{task.id}", headers=auth_headers, json=body)
        assert response.status_code == 200
        assert response.json()["task"]["status"] == "done"

        listed = test_client.get("/tasks", headers=auth_headers).json()["tasks"]
        assert len(listed) == 2
        successor = next(t for t in listed if t["id"] != task.id)
        assert successor["recurringTemplateId"] == task.id
        assert successor["status"] == "todo"

    def test_put_id_mismatch(self, test_client, auth_headers, seed_task):
        task = seed_task()
        body = task.model_dump(by_alias=True, mode="json")
        response = test_client.put("/tasks/other-id", headers=auth_headers, json=body)
        assert response.status_code == 400

    def test_delete_series(self, test_client, auth_headers, daily_series):
        response = test_client.delete(f"/tasks/{daily_series['tomorrow'].id}", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert sorted(data["deleted_ids"]) == sorted([daily_series["today"].id, daily_series["tomorrow"].id])
        assert data["terminated_id"] == daily_series["yesterday"].id

    def test_delete_unknown(self, test_client, auth_headers):
        assert test_client.delete("/tasks/nonexistent-id", headers=auth_headers).status_code == 404

    def test_bulk_delete_and_update(self, test_client, auth_headers, seed_task):
        tasks = [seed_task(title=f"t{i}") for i in range(3)]

        response = test_client.post("/tasks/bulk-delete", headers=auth_headers, json={"ids": [tasks[0].id]})
        assert response.status_code == 200
        assert len(response.json()["tasks"]) == 2

        bodies = []
        for task in tasks[1:]:
            body = task.model_dump(by_alias=True, mode="json")
            body["isImportant"] = True
            bodies.append(body)
        response = test_client.post("/tasks/bulk-update", headers=auth_headers, json={"tasks": bodies})
        assert response.status_code == 200
        assert all(t["isImportant"] for t in response.json()["tasks"])

    def test_tasks_are_scoped_to_owner(self, test_client, auth_headers, seed_task):
        seed_task(title="theirs", user_id="someone-else")
        assert test_client.get("/tasks", headers=auth_headers).json()["tasks"] == []


class TestOwnerIsolation:
    def test_put_other_owners_task_is_not_found(self, test_client, auth_headers, seed_task, sql_store):
        theirs = seed_task(title="theirs", recurrence=Recurrence.DAILY, user_id="someone-else")
        body = theirs.model_dump(by_alias=True, mode="json")
        body["status"] = TaskStatus.DONE.value

        response = test_client.put(f"/tasks/{theirs.id}", headers=auth_headers, json=body)

        assert response.status_code == 404
        rows = sql_store.query(where={"user_id": "someone-else"})
        assert [(row["id"], row["status"]) for row in rows] == [(theirs.id, "todo")]

    def test_bulk_update_with_other_owners_task_is_not_found(self, test_client, auth_headers, seed_task, sql_store):
        mine = seed_task(title="mine")
        theirs = seed_task(title="theirs", user_id="someone-else")
        bodies = []
        for task in (mine, theirs):
            body = task.model_dump(by_alias=True, mode="json")
            body["title"] = "moved"
            bodies.append(body)

        response = test_client.post("/tasks/bulk-update", headers=auth_headers, json={"tasks": bodies})

        assert response.status_code == 404
        assert sorted(row["title"] for row in sql_store.query()) == ["mine", "theirs"]

    def test_bulk_delete_leaves_other_owners_task(self, test_client, auth_headers, seed_task, sql_store):
        mine = seed_task(title="mine")
        theirs = seed_task(title="theirs", user_id="someone-else")

        response = test_client.post("/tasks/bulk-delete", headers=auth_headers, json={"ids": [mine.id, theirs.id]})

        assert response.status_code == 200
        assert response.json()["tasks"] == []
        assert [row["id"] for row in sql_store.query()] == [theirs.id]
