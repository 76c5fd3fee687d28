"""Zip downloads built from folder listings.

Archives are best-effort: a file that cannot be fetched is skipped and the
rest of the archive is still returned.
"""

import asyncio
import io
import json
import logging
import re
import zipfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import NotFound, ObjectStoreFailure
from app.models.folder import ProjectFolder
from app.models.upload import Upload
from app.services.listing import list_folder_files
from app.services.projects import get_scoped_project
from app.services.tenant import TenantContext

logger = logging.getLogger(__name__)

MANIFEST_NAME = "AUDIT_MANIFEST.json"


@dataclass
class Archive:
    filename: str
    content: bytes
    file_count: int
    skipped: List[str] = field(default_factory=list)


def safe_archive_stem(name: str, fallback: str) -> str:
    stem = re.sub(r"[^A-Za-z0-9._-]+", "-", name or "").strip("-")
    return stem or fallback


def unique_entry_name(name: str, used: Dict[str, int]) -> str:
    """Disambiguate duplicate display names as ``name (1).ext``."""
    if name not in used:
        used[name] = 0
        return name
    stem, dot, ext = name.rpartition(".")
    if not stem:
        stem, dot, ext = name, "", ""
    while True:
        used[name] += 1
        candidate = f"{stem} ({used[name]}){dot}{ext}"
        if candidate not in used:
            used[candidate] = 0
            return candidate


async def fetch_many(store, files: List[Upload]) -> Dict[str, Optional[bytes]]:
    """Fetch objects concurrently; failed reads map to None."""
    semaphore = asyncio.Semaphore(settings.zip_fetch_concurrency)

    async def _fetch(upload: Upload):
        async with semaphore:
            try:
                return upload.id, await store.fetch(
                    upload.storage_key, settings.zip_fetch_url_ttl_seconds
                )
            except ObjectStoreFailure as e:
                logger.warning(f"Skipping {upload.file_name} in archive: {e.detail}")
                return upload.id, None

    results = await asyncio.gather(*[_fetch(upload) for upload in files])
    return dict(results)


def _capped(files: List[Upload]) -> List[Upload]:
    if len(files) > settings.zip_max_files:
        logger.warning(
            f"Archive capped at {settings.zip_max_files} of {len(files)} files"
        )
        return files[: settings.zip_max_files]
    return files


async def build_folder_zip(
    db: Session, store, ctx: TenantContext, folder_id: str
) -> Archive:
    files = list_folder_files(db, ctx, folder_id)
    if not files:
        raise NotFound("No files to download")
    files = _capped(files)

    payloads = await fetch_many(store, files)

    buffer = io.BytesIO()
    used: Dict[str, int] = {}
    written = 0
    skipped = []
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for upload in files:
            data = payloads.get(upload.id)
            if data is None:
                skipped.append(upload.file_name)
                continue
            zf.writestr(unique_entry_name(upload.file_name, used), data)
            written += 1

    return Archive(
        filename=f"slatedrop-{folder_id}.zip",
        content=buffer.getvalue(),
        file_count=written,
        skipped=skipped,
    )


async def build_project_audit_export(
    db: Session, store, ctx: TenantContext, project_id: str
) -> Archive:
    """Zip every active file of a project, one directory per folder, plus a
    JSON manifest."""
    project = get_scoped_project(db, ctx, project_id)
    folders = ctx.scope_folders(
        db.query(ProjectFolder).filter(
            ProjectFolder.project_id == project.id,
            ProjectFolder.is_deleted == False,
        )
    ).order_by(ProjectFolder.folder_path.asc()).all()
    if not folders:
        raise NotFound("No project folders found")

    root = f"{folders[0].folder_path.split('/', 1)[0]}/{project.name}/"
    manifest = {
        "projectId": project.id,
        "projectName": project.name,
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "totalFolders": len(folders),
        "totalFiles": 0,
        "folders": [],
    }

    buffer = io.BytesIO()
    skipped = []
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for folder in folders:
            relative = folder.folder_path
            if relative.startswith(root):
                relative = relative[len(root):]
            entry = {"id": folder.id, "name": folder.name, "path": relative, "files": []}

            files = _capped(list_folder_files(db, ctx, folder.id))
            payloads = await fetch_many(store, files)
            used: Dict[str, int] = {}
            for upload in files:
                data = payloads.get(upload.id)
                if data is None:
                    skipped.append(upload.file_name)
                    continue
                zf.writestr(f"{relative}/{unique_entry_name(upload.file_name, used)}", data)
                entry["files"].append(
                    {"id": upload.id, "name": upload.file_name, "size": int(upload.file_size or 0)}
                )
                manifest["totalFiles"] += 1
            manifest["folders"].append(entry)

        if manifest["totalFiles"] == 0:
            raise NotFound("No files found in project folders")
        zf.writestr(MANIFEST_NAME, json.dumps(manifest, indent=2))

    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    return Archive(
        filename=f"{safe_archive_stem(project.name, 'project')}-audit-package-{stamp}.zip",
        content=buffer.getvalue(),
        file_count=manifest["totalFiles"],
        skipped=skipped,
    )
