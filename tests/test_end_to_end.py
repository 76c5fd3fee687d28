import re

from fastapi import status

from tests.helpers import folder_by_name


class TestTowerAScenario:
    """Project creation through upload and listing of a hostile filename"""

    def test_sanitized_key_and_preserved_display_name(
        self, client, store, create_test_user, create_test_org, auth_headers
    ):
        user = create_test_user()
        org = create_test_org(members=[(user, "owner")])
        headers = auth_headers(user)

        created = client.post("/api/v1/projects/", json={"name": "Tower A"}, headers=headers)
        assert created.status_code == status.HTTP_201_CREATED
        project_id = created.json()["project"]["id"]

        provisioned = client.post(f"/api/v1/projects/{project_id}/provision", headers=headers)
        assert provisioned.status_code == status.HTTP_200_OK
        names = [f["name"] for f in provisioned.json()["folders"]]
        assert len(names) == 15
        assert "Drawings" in names and "Photos" in names
        drawings = folder_by_name(provisioned.json(), "Drawings")

        slot = client.post(
            "/api/v1/files/upload-url",
            json={
                "filename": "../../evil<script>.pdf",
                "contentType": "application/pdf",
                "size": 4,
                "folderId": drawings["id"],
            },
            headers=headers,
        )
        assert slot.status_code == status.HTTP_200_OK
        key = slot.json()["storage_key"]
        assert re.fullmatch(
            rf"orgs/{org.id}/{drawings['id']}/\d+_evil_script_\.pdf", key
        )
        assert "../" not in key
        store.client_upload(key, b"%PDF")

        done = client.post(
            "/api/v1/files/complete", json={"fileId": slot.json()["file_id"]}, headers=headers
        )
        assert done.status_code == status.HTTP_200_OK

        listed = client.get("/api/v1/files/", params={"folder_id": drawings["id"]}, headers=headers)
        files = listed.json()["files"]
        assert len(files) == 1
        assert files[0]["file_name"] == "../../evil<script>.pdf"
        assert files[0]["storage_key"] == key
