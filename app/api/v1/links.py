from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.v1.auth import get_tenant
from app.core.database import get_db
from app.schemas.link import RequestLinkCreate, RequestLinkResponse
from app.services.external_links import create_request_link
from app.services.tenant import TenantContext

router = APIRouter()


@router.post("/", response_model=RequestLinkResponse, status_code=201)
async def create_link(
    body: RequestLinkCreate,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant),
):
    link = create_request_link(db, ctx, body.project_id, body.folder_id, body.expires_at)
    return {
        "ok": True,
        "token": link.token,
        "url": f"/upload/{link.token}",
        "expires_at": link.expires_at,
    }
