"""Namespace and object-key helpers.

Every object in the bucket lives under ``orgs/{namespace}/{folder_token}/``.
The object store has no folders; these prefixes are the folders, and the
metadata store filters on them.
"""

import os
import re
import time
from typing import Optional

NAMESPACE_SENTINELS = {"default"}
KEY_ROOT = "orgs"
ARTIFACT_ROOT = "Projects"
MAX_KEY_BYTES = 1024

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._()\- ]")


def resolve_namespace(org_id: Optional[str], user_id: str) -> str:
    if org_id and org_id not in NAMESPACE_SENTINELS:
        return org_id
    return user_id


def sanitize_filename(filename: str) -> str:
    # only the last path component survives, so "../" can never reach the key
    base = re.split(r"[\\/]", filename or "")[-1]
    safe = _UNSAFE_CHARS.sub("_", base).lstrip(". ")
    return safe or "file"


def sanitize_path_segment(name: str, max_length: int = 120) -> str:
    segment = re.sub(r"[\\/]+", "-", (name or "").strip())
    segment = re.sub(r"\s+", " ", segment)
    return segment[:max_length]


def folder_prefix(namespace: str, folder_token: str) -> str:
    return f"{KEY_ROOT}/{namespace}/{folder_token}/"


def namespace_prefix(namespace: str) -> str:
    return f"{KEY_ROOT}/{namespace}/"


def artifact_folder_token(project_name: str, folder_name: str) -> str:
    return (
        f"{ARTIFACT_ROOT}/{sanitize_path_segment(project_name)}"
        f"/{sanitize_path_segment(folder_name)}"
    )


def _truncate(name: str, budget: int) -> str:
    if len(name.encode("utf-8")) <= budget:
        return name
    stem, ext = os.path.splitext(name)
    if len(ext) >= budget:
        ext = ""
    return stem[: max(budget - len(ext), 1)] + ext


def build_storage_key(
    namespace: str,
    folder_token: str,
    filename: str,
    now_ms: Optional[int] = None,
) -> str:
    """Build ``orgs/{namespace}/{folder_token}/{unix_millis}_{safe_name}``.

    Two uploads of the same sanitized name in the same millisecond share a
    key and the later write wins.
    """
    if not namespace:
        raise ValueError("namespace must not be empty")
    if now_ms is None:
        now_ms = int(time.time() * 1000)

    prefix = f"{folder_prefix(namespace, folder_token)}{now_ms}_"
    budget = MAX_KEY_BYTES - 1 - len(prefix.encode("utf-8"))
    if budget <= 0:
        raise ValueError("folder token too long for an object key")
    return prefix + _truncate(sanitize_filename(filename), budget)


def file_extension(filename: str) -> str:
    if "." not in (filename or ""):
        return ""
    return filename.rsplit(".", 1)[-1].lower()
