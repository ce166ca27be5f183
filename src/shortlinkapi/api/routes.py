from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from shortlinkapi.api.deps import create_rate_limiter, get_current_owner
from shortlinkapi.db.session import get_db
from shortlinkapi.schemas.links import CreateLinkRequest, LinkListResponse, LinkResponse, UpdateLinkRequest
from shortlinkapi.services import links as link_service

router = APIRouter(prefix="/api/links", tags=["links"])


@router.post(
    "",
    response_model=LinkResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(create_rate_limiter)],
)
def create_link(
    req: CreateLinkRequest,
    owner_id: str = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    return link_service.create_link(db, owner_id, req)


@router.get("", response_model=LinkListResponse)
def list_links(owner_id: str = Depends(get_current_owner), db: Session = Depends(get_db)):
    links = link_service.list_links(db, owner_id)
    return LinkListResponse(count=len(links), data=[LinkResponse.model_validate(link) for link in links])


@router.get("/{link_id}", response_model=LinkResponse)
def get_link(link_id: int, owner_id: str = Depends(get_current_owner), db: Session = Depends(get_db)):
    return link_service.get_owned_link(db, link_id, owner_id)


@router.patch("/{link_id}", response_model=LinkResponse)
def update_link(
    link_id: int,
    req: UpdateLinkRequest,
    owner_id: str = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    link = link_service.get_owned_link(db, link_id, owner_id)
    return link_service.update_link(db, link, req)


@router.delete("/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_link(link_id: int, owner_id: str = Depends(get_current_owner), db: Session = Depends(get_db)):
    link = link_service.get_owned_link(db, link_id, owner_id)
    link_service.delete_link(db, link)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
