import pytest

from app.utils.storage_keys import (
    MAX_KEY_BYTES,
    artifact_folder_token,
    build_storage_key,
    file_extension,
    resolve_namespace,
    sanitize_filename,
    sanitize_path_segment,
)


class TestResolveNamespace:
    """Namespace selection between organization and solo user"""

    def test_org_id_wins(self):
        assert resolve_namespace("org-1", "user-1") == "org-1"

    def test_missing_org_falls_back_to_user(self):
        assert resolve_namespace(None, "user-1") == "user-1"
        assert resolve_namespace("", "user-1") == "user-1"

    def test_default_sentinel_is_not_a_namespace(self):
        assert resolve_namespace("default", "user-1") == "user-1"


class TestSanitizeFilename:
    """Filename cleanup before it becomes part of an object key"""

    def test_traversal_and_markup_are_removed(self):
        assert sanitize_filename("../../evil<script>.pdf") == "evil_script_.pdf"

    def test_backslash_paths_keep_last_component(self):
        assert sanitize_filename("C:\\Users\\me\\site plan.dwg") == "site plan.dwg"

    def test_allowed_characters_survive(self):
        assert sanitize_filename("Level 2 (rev-3)_final.pdf") == "Level 2 (rev-3)_final.pdf"

    def test_leading_dots_are_stripped(self):
        assert sanitize_filename(".htaccess") == "htaccess"

    def test_empty_name_falls_back(self):
        assert sanitize_filename("") == "file"
        assert sanitize_filename("../") == "file"

    def test_unicode_is_replaced(self):
        assert sanitize_filename("plän.pdf") == "pl_n.pdf"


class TestBuildStorageKey:
    """Object key layout orgs/{namespace}/{folder}/{millis}_{name}"""

    def test_key_layout(self):
        key = build_storage_key("org-1", "folder-9", "../../evil<script>.pdf", now_ms=1700000000000)
        assert key == "orgs/org-1/folder-9/1700000000000_evil_script_.pdf"

    def test_key_has_no_traversal(self):
        key = build_storage_key("ns", "f", "../../../etc/passwd", now_ms=1)
        assert ".." not in key
        assert key.startswith("orgs/ns/f/")

    def test_empty_namespace_is_rejected(self):
        with pytest.raises(ValueError):
            build_storage_key("", "f", "a.pdf")

    def test_long_names_are_truncated_and_keep_extension(self):
        key = build_storage_key("ns", "f", "a" * 5000 + ".pdf", now_ms=1)
        assert len(key.encode("utf-8")) < MAX_KEY_BYTES
        assert key.endswith(".pdf")

    def test_timestamp_defaults_to_now(self):
        key = build_storage_key("ns", "f", "a.pdf")
        millis = key.split("/")[-1].split("_", 1)[0]
        assert millis.isdigit()


class TestHelpers:
    def test_artifact_folder_token(self):
        assert artifact_folder_token("Tower A", "Daily Logs") == "Projects/Tower A/Daily Logs"

    def test_artifact_token_strips_slashes(self):
        assert artifact_folder_token("A/B", "RFIs") == "Projects/A-B/RFIs"

    def test_path_segment_collapses_whitespace(self):
        assert sanitize_path_segment("  Site   Walk \t Notes ") == "Site Walk Notes"

    def test_file_extension(self):
        assert file_extension("Photo.JPG") == "jpg"
        assert file_extension("README") == ""
