import os
import tempfile

# Point the app at a throwaway database before it is imported
_db_dir = tempfile.mkdtemp()
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ["WEBHOOK_URL"] = ""

import pytest
from fastapi.testclient import TestClient

from classroom_qa.database import reset_db
from classroom_qa.main import app

PASSWORD = "Passw0rd!"


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


class Api:
    """Small wrapper around TestClient for setting up users and content."""

    def __init__(self, client):
        self.client = client
        self._admin = None

    def register(self, username, password=PASSWORD, invitation_code=None):
        payload = {"username": username, "password": password}
        if invitation_code is not None:
            payload["invitation_code"] = invitation_code
        return self.client.post("/register", json=payload)

    @property
    def admin(self):
        if self._admin is None:
            r = self.register("admin")
            assert r.status_code == 200, r.text
            self._admin = bearer(r.json()["access_token"])
        return self._admin

    def invite(self):
        r = self.client.post("/admin/invitations", headers=self.admin)
        assert r.status_code == 200, r.text
        return r.json()["code"]

    def make_user(self, username, *roles):
        roles = roles or ("student",)
        r = self.register(username, invitation_code=self.invite())
        assert r.status_code == 200, r.text
        headers = bearer(r.json()["access_token"])
        for role in roles:
            if role != "student":
                r = self.client.post(f"/admin/users/{username}/roles/{role}", headers=self.admin)
                assert r.status_code == 200, r.text
        if "student" not in roles:
            r = self.client.delete(f"/admin/users/{username}/roles/student", headers=self.admin)
            assert r.status_code == 200, r.text
        return headers

    def ask(self, headers, body="How do I compute the mean?"):
        r = self.client.post("/questions", json={"body": body}, headers=headers)
        assert r.status_code == 200, r.text
        return r.json()

    def answer(self, headers, question_id, body="Add them up and divide by the count."):
        r = self.client.post(f"/questions/{question_id}/answers", json={"body": body}, headers=headers)
        assert r.status_code == 200, r.text
        return r.json()

    def review(self, headers, answer_id, body="Clear and correct."):
        r = self.client.post(f"/answers/{answer_id}/reviews", json={"body": body}, headers=headers)
        assert r.status_code == 200, r.text
        return r.json()


@pytest.fixture
def client():
    reset_db()
    return TestClient(app)


@pytest.fixture
def api(client):
    return Api(client)
