"""
Tests for registration, login, session and password reset.
"""

from caliquest.core.security import create_access_token, create_password_reset_token
from caliquest.models import User

from conftest import PASSWORD, api, login


def register(client, email="new@example.com", password=PASSWORD):
    return client.post(api("/auth/register"), json={"email": email, "password": password})


class TestRegister:

    def test_register_creates_user_without_profile(self, client, db):
        response = register(client)

        assert response.status_code == 201
        body = response.json()
        assert body["email"] == "new@example.com"
        assert body["is_active"] is True

        headers = login(client, "new@example.com")
        session = client.get(api("/auth/session"), headers=headers).json()
        assert session["profile"] is None
        assert session["onboarding_completed"] is False
        assert session["is_admin"] is False

    def test_duplicate_email_is_rejected(self, client, db):
        register(client)
        response = register(client, email="NEW@example.com")
        assert response.status_code == 400

    def test_weak_password_is_rejected(self, client, db):
        response = register(client, password="abc")
        assert response.status_code == 400
        assert response.json()["detail"]["issues"]


class TestLogin:

    def test_login_returns_token_and_session(self, client, player):
        response = client.post(
            api("/auth/login"),
            data={"username": player.email, "password": PASSWORD}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["session"]["user_id"] == player.id
        assert body["session"]["onboarding_completed"] is True
        assert body["session"]["profile"]["username"] == "player"

    def test_wrong_password(self, client, player):
        response = client.post(
            api("/auth/login"),
            data={"username": player.email, "password": "wrong-pass1"}
        )
        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHENTICATED"

    def test_login_records_last_login(self, client, db, player):
        login(client, player.email)
        db.expire_all()
        assert db.get(User, player.id).last_login_at is not None


class TestSession:

    def test_missing_token_is_unauthenticated(self, client, db):
        response = client.get(api("/auth/session"))
        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHENTICATED"
        assert response.headers["www-authenticate"] == "Bearer"

    def test_invalid_token_is_unauthenticated(self, client, db):
        response = client.get(
            api("/auth/session"), headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHENTICATED"
        assert response.headers["www-authenticate"] == "Bearer"

    def test_reset_token_is_not_an_access_token(self, client, player):
        token = create_password_reset_token(player.email)
        response = client.get(
            api("/auth/session"), headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401

    def test_token_for_deleted_user(self, client, db):
        token = create_access_token(subject="424242")
        response = client.get(
            api("/auth/session"), headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401

    def test_admin_flag_is_read_from_profile_each_request(self, client, db, player, player_headers):
        assert client.get(api("/auth/session"), headers=player_headers).json()["is_admin"] is False

        player.profile.is_admin = True
        db.commit()

        assert client.get(api("/auth/session"), headers=player_headers).json()["is_admin"] is True


class TestPasswordReset:

    def test_reset_flow(self, client, db, player):
        response = client.post(
            api("/auth/request-password-reset"), json={"email": player.email}
        )
        assert response.status_code == 200

        db.expire_all()
        token = db.get(User, player.id).password_reset_token
        assert token

        response = client.post(
            api("/auth/reset-password"),
            json={"token": token, "new_password": "fresh456"}
        )
        assert response.status_code == 200

        login(client, player.email, "fresh456")

        reused = client.post(
            api("/auth/reset-password"),
            json={"token": token, "new_password": "other789"}
        )
        assert reused.status_code == 400

    def test_unknown_email_gets_same_answer(self, client, db):
        response = client.post(
            api("/auth/request-password-reset"), json={"email": "ghost@example.com"}
        )
        assert response.status_code == 200

    def test_garbage_token_is_rejected(self, client, db):
        response = client.post(
            api("/auth/reset-password"),
            json={"token": "garbage", "new_password": "fresh456"}
        )
        assert response.status_code == 400
