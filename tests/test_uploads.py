from datetime import datetime, timedelta, timezone

from fastapi import status
from sqlalchemy.exc import OperationalError

from app.models.upload import Upload, UploadStatus
from tests.helpers import folder_by_name


def _slot_body(folder_id, filename="plan.pdf"):
    return {
        "filename": filename,
        "contentType": "application/pdf",
        "size": 8,
        "folderId": folder_id,
    }


class TestUploadUrl:
    """POST /api/v1/files/upload-url"""

    def test_reserves_pending_row_under_folder_prefix(
        self, client, create_test_user, auth_headers, create_project, db_session
    ):
        user = create_test_user()
        drawings = folder_by_name(create_project(user), "Drawings")

        response = client.post(
            "/api/v1/files/upload-url",
            json=_slot_body(drawings["id"], "../../evil<script>.pdf"),
            headers=auth_headers(user),
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["storage_key"].startswith(f"orgs/{user.id}/{drawings['id']}/")
        assert data["storage_key"].endswith("_evil_script_.pdf")
        assert data["upload_url"].startswith("https://storage.test/put/")

        row = db_session.query(Upload).filter(Upload.id == data["file_id"]).one()
        assert row.status == UploadStatus.PENDING
        assert row.upload_expires_at is not None

    def test_pending_rows_are_not_listed(self, client, create_test_user, auth_headers, create_project):
        user = create_test_user()
        drawings = folder_by_name(create_project(user), "Drawings")
        headers = auth_headers(user)
        client.post("/api/v1/files/upload-url", json=_slot_body(drawings["id"]), headers=headers)

        listed = client.get("/api/v1/files/", params={"folder_id": drawings["id"]}, headers=headers)

        assert listed.json()["files"] == []

    def test_upload_into_foreign_folder(self, client, create_test_user, auth_headers, create_project):
        alice = create_test_user(email="alice@example.com")
        bob = create_test_user(email="bob@example.com")
        drawings = folder_by_name(create_project(alice), "Drawings")

        response = client.post(
            "/api/v1/files/upload-url", json=_slot_body(drawings["id"]), headers=auth_headers(bob)
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_signing_failure_creates_no_row(
        self, client, store, create_test_user, auth_headers, create_project, db_session
    ):
        user = create_test_user()
        drawings = folder_by_name(create_project(user), "Drawings")
        store.fail_ops.add("sign-put")

        response = client.post(
            "/api/v1/files/upload-url", json=_slot_body(drawings["id"]), headers=auth_headers(user)
        )

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert db_session.query(Upload).count() == 0

    def test_metadata_insert_failure_is_reported(
        self, client, create_test_user, auth_headers, create_project, db_session, monkeypatch
    ):
        user = create_test_user()
        drawings = folder_by_name(create_project(user), "Drawings")
        headers = auth_headers(user)

        def failing_commit():
            raise OperationalError("INSERT", {}, Exception("disk full"))

        monkeypatch.setattr(db_session, "commit", failing_commit)

        response = client.post(
            "/api/v1/files/upload-url", json=_slot_body(drawings["id"]), headers=headers
        )

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["detail"] == "Failed to record upload"
        assert db_session.query(Upload).count() == 0


class TestCompleteUpload:
    """POST /api/v1/files/complete"""

    def test_complete_activates_and_lists(self, client, store, create_test_user, auth_headers, create_project):
        user = create_test_user()
        drawings = folder_by_name(create_project(user), "Drawings")
        headers = auth_headers(user)
        slot = client.post(
            "/api/v1/files/upload-url", json=_slot_body(drawings["id"]), headers=headers
        ).json()
        store.client_upload(slot["storage_key"])

        response = client.post("/api/v1/files/complete", json={"fileId": slot["file_id"]}, headers=headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "active"
        listed = client.get("/api/v1/files/", params={"folder_id": drawings["id"]}, headers=headers)
        assert [f["id"] for f in listed.json()["files"]] == [slot["file_id"]]

    def test_complete_twice_is_noop(self, client, create_test_user, auth_headers, create_project):
        user = create_test_user()
        drawings = folder_by_name(create_project(user), "Drawings")
        headers = auth_headers(user)
        slot = client.post(
            "/api/v1/files/upload-url", json=_slot_body(drawings["id"]), headers=headers
        ).json()

        first = client.post("/api/v1/files/complete", json={"fileId": slot["file_id"]}, headers=headers)
        second = client.post("/api/v1/files/complete", json={"fileId": slot["file_id"]}, headers=headers)

        assert first.status_code == second.status_code == status.HTTP_200_OK
        assert second.json()["status"] == "active"

    def test_complete_foreign_file(self, client, create_test_user, auth_headers, create_project):
        alice = create_test_user(email="alice@example.com")
        bob = create_test_user(email="bob@example.com")
        drawings = folder_by_name(create_project(alice), "Drawings")
        slot = client.post(
            "/api/v1/files/upload-url", json=_slot_body(drawings["id"]), headers=auth_headers(alice)
        ).json()

        response = client.post(
            "/api/v1/files/complete", json={"fileId": slot["file_id"]}, headers=auth_headers(bob)
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_complete_unknown_file(self, authenticated_client):
        client, _ = authenticated_client

        response = client.post("/api/v1/files/complete", json={"fileId": "missing"})

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestRequestLinkUploads:
    """External request links and /api/v1/public/uploads/{token}"""

    def _create_link(self, client, user, headers, payload, folder_name="Submittals", expires_at=None):
        folder = folder_by_name(payload, folder_name)
        body = {"projectId": payload["project"]["id"], "folderId": folder["id"]}
        if expires_at:
            body["expiresAt"] = expires_at.isoformat()
        response = client.post("/api/v1/links/", json=body, headers=headers)
        assert response.status_code == status.HTTP_201_CREATED, response.text
        return response.json(), folder

    def test_link_token_format(self, client, create_test_user, auth_headers, create_project):
        user = create_test_user()
        link, _ = self._create_link(client, user, auth_headers(user), create_project(user))

        assert len(link["token"]) == 48
        int(link["token"], 16)
        assert link["url"] == f"/upload/{link['token']}"

    def test_upload_through_valid_token(
        self, client, store, create_test_user, auth_headers, create_project
    ):
        user = create_test_user()
        headers = auth_headers(user)
        link, folder = self._create_link(client, user, headers, create_project(user))

        slot = client.post(
            f"/api/v1/public/uploads/{link['token']}/upload-url",
            json={"filename": "shop drawing.pdf", "contentType": "application/pdf", "size": 3},
        )
        assert slot.status_code == status.HTTP_200_OK
        assert slot.json()["storage_key"].startswith(f"orgs/{user.id}/{folder['id']}/")
        store.client_upload(slot.json()["storage_key"], b"pdf")

        done = client.post(
            f"/api/v1/public/uploads/{link['token']}/complete",
            json={"fileId": slot.json()["file_id"]},
        )

        assert done.status_code == status.HTTP_200_OK
        listed = client.get("/api/v1/files/", params={"folder_id": folder["id"]}, headers=headers)
        assert [f["file_name"] for f in listed.json()["files"]] == ["shop drawing.pdf"]

    def test_expired_token_is_rejected(self, client, create_test_user, auth_headers, create_project):
        user = create_test_user()
        expired = datetime.now(timezone.utc) - timedelta(minutes=1)
        link, _ = self._create_link(
            client, user, auth_headers(user), create_project(user), expires_at=expired
        )

        response = client.post(
            f"/api/v1/public/uploads/{link['token']}/upload-url",
            json={"filename": "a.pdf", "contentType": "application/pdf"},
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unknown_token_is_rejected(self, client):
        response = client.post(
            "/api/v1/public/uploads/deadbeef/upload-url",
            json={"filename": "a.pdf", "contentType": "application/pdf"},
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_token_cannot_complete_file_outside_link_folder(
        self, client, create_test_user, auth_headers, create_project
    ):
        user = create_test_user()
        headers = auth_headers(user)
        payload = create_project(user)
        link, _ = self._create_link(client, user, headers, payload)
        photos = folder_by_name(payload, "Photos")
        other = client.post(
            "/api/v1/files/upload-url", json=_slot_body(photos["id"]), headers=headers
        ).json()

        response = client.post(
            f"/api/v1/public/uploads/{link['token']}/complete", json={"fileId": other["file_id"]}
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_link_for_foreign_folder_is_refused(self, client, create_test_user, auth_headers, create_project):
        alice = create_test_user(email="alice@example.com")
        bob = create_test_user(email="bob@example.com")
        payload = create_project(alice)
        folder = folder_by_name(payload, "Submittals")

        response = client.post(
            "/api/v1/links/",
            json={"projectId": payload["project"]["id"], "folderId": folder["id"]},
            headers=auth_headers(bob),
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
