PASSWORD = "secret-pass"


class TestLogin:
    def test_login_returns_bearer_token(self, client, admin):
        response = client.post("/login", data={"username": admin["email"], "password": PASSWORD})

        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["role"] == "admin"
        assert body["user_id"] == admin["id"]

        me = client.get("/users/me", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert me.json()["email"] == admin["email"]

    def test_wrong_password_is_rejected(self, client, admin):
        response = client.post("/login", data={"username": admin["email"], "password": "nope"})
        assert response.status_code == 401

    def test_requests_without_token_are_rejected(self, client):
        assert client.get("/equipment/").status_code == 401

    def test_garbage_token_is_rejected(self, client):
        response = client.get("/equipment/", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401


class TestUsers:
    def test_admin_creates_user_with_default_password(self, client, admin_headers):
        response = client.post("/users/", json={
            "first_name": "Tina",
            "last_name": "Tech",
            "email": "tina@example.com",
            "role": "technician",
        }, headers=admin_headers)

        assert response.status_code == 201
        created = response.json()
        assert "password_hash" not in created

        login = client.post("/login", data={"username": "tina@example.com", "password": "defaultPassword123"})
        assert login.status_code == 200
        assert login.json()["role"] == "technician"

    def test_duplicate_email_conflicts(self, client, admin, admin_headers):
        response = client.post("/users/", json={
            "first_name": "Copy", "last_name": "Cat", "email": admin["email"],
        }, headers=admin_headers)
        assert response.status_code == 409

    def test_non_admin_cannot_create_users(self, client, technician_headers):
        response = client.post("/users/", json={
            "first_name": "X", "last_name": "Y", "email": "xy@example.com",
        }, headers=technician_headers)
        assert response.status_code == 403

    def test_list_filters_by_role(self, client, admin, technician, admin_headers):
        response = client.get("/users/", params={"role": "technician"}, headers=admin_headers)

        users = response.json()["users"]
        assert [u["id"] for u in users] == [technician["id"]]

    def test_update_and_delete_user(self, client, technician, admin_headers):
        updated = client.put(f"/users/{technician['id']}", json={"department": "Production"}, headers=admin_headers)
        assert updated.json()["department"] == "Production"

        assert client.delete(f"/users/{technician['id']}", headers=admin_headers).status_code == 200
        assert client.get(f"/users/{technician['id']}", headers=admin_headers).status_code == 404


class TestSettings:
    def test_settings_are_created_on_first_read(self, client, admin_headers, admin):
        settings = client.get("/settings/me", headers=admin_headers).json()

        assert settings["user_id"] == admin["id"]
        assert settings["email_notifications"] is True
        assert settings["system_updates"] is False
        assert settings["reminder_days"] == 3

        again = client.get("/settings/me", headers=admin_headers).json()
        assert again["id"] == settings["id"]

    def test_owner_updates_settings(self, client, technician_headers):
        settings = client.get("/settings/me", headers=technician_headers).json()

        response = client.put(f"/settings/{settings['id']}", json={"daily_digest": False, "reminder_days": 7},
                              headers=technician_headers)

        assert response.status_code == 200
        assert response.json()["daily_digest"] is False
        assert response.json()["reminder_days"] == 7

    def test_other_users_settings_are_protected(self, client, admin_headers, technician_headers, make_user,
                                                headers_for):
        other_headers = headers_for(make_user("user", email="other@example.com"))
        settings = client.get("/settings/me", headers=technician_headers).json()

        assert client.put(f"/settings/{settings['id']}", json={"timezone": "UTC"},
                          headers=other_headers).status_code == 403
        assert client.put(f"/settings/{settings['id']}", json={"timezone": "UTC"},
                          headers=admin_headers).status_code == 200


class TestPermissions:
    def test_role_permission_grants_access(self, client, admin_headers, technician_headers):
        permission = client.post("/permissions/", json={
            "name": "tasks.complete", "module": "maintenance",
        }, headers=admin_headers).json()

        check = client.get("/permissions/check", params={"name": "tasks.complete"}, headers=technician_headers)
        assert check.json()["allowed"] is False

        grant = client.post("/permissions/roles", json={
            "role": "technician", "permission_id": permission["id"],
        }, headers=admin_headers)
        assert grant.status_code == 201

        check = client.get("/permissions/check", params={"name": "tasks.complete"}, headers=technician_headers)
        assert check.json()["allowed"] is True

        listed = client.get("/permissions/roles/technician", headers=technician_headers).json()
        assert [p["permission_name"] for p in listed["permissions"]] == ["tasks.complete"]

        client.delete(f"/permissions/roles/{grant.json()['id']}", headers=admin_headers)
        check = client.get("/permissions/check", params={"name": "tasks.complete"}, headers=technician_headers)
        assert check.json()["allowed"] is False

    def test_admin_always_allowed(self, client, admin_headers):
        check = client.get("/permissions/check", params={"name": "anything"}, headers=admin_headers)
        assert check.json()["allowed"] is True

    def test_duplicate_grant_conflicts(self, client, admin_headers):
        permission = client.post("/permissions/", json={"name": "reports.view", "module": "reports"},
                                 headers=admin_headers).json()
        body = {"role": "manager", "permission_id": permission["id"]}

        assert client.post("/permissions/roles", json=body, headers=admin_headers).status_code == 201
        assert client.post("/permissions/roles", json=body, headers=admin_headers).status_code == 409


def test_display_metadata_is_public(client):
    response = client.get("/display-metadata")

    assert response.status_code == 200
    assert response.json()["task_priority"]["critical"]["color"] == "red"


def test_responses_carry_request_id(client):
    response = client.get("/display-metadata", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"
