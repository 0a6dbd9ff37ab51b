from typing import Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile, status

from schemas import BlogCreate, BlogUpdate
from security import AdminOnly
from services import BlogService

router = APIRouter(prefix="/blogs", tags=["blogs"])


def get_blog_service(request: Request) -> BlogService:
    return request.app.state.blog_service


# Public routes

@router.get("")
def list_blogs(request: Request, service: BlogService = Depends(get_blog_service)):
    return service.list(request.query_params)


@router.get("/{blog_id}")
def get_blog(blog_id: str, service: BlogService = Depends(get_blog_service)):
    return {"success": True, "data": service.get(blog_id)}


# Admin routes

@router.post("", status_code=status.HTTP_201_CREATED)
def create_blog(body: BlogCreate, identity: AdminOnly, service: BlogService = Depends(get_blog_service)):
    return {"success": True, "data": service.create(identity, body)}


@router.put("/{blog_id}")
def update_blog(blog_id: str, body: BlogUpdate, identity: AdminOnly,
                service: BlogService = Depends(get_blog_service)):
    return {"success": True, "data": service.update(identity, blog_id, body)}


@router.delete("/{blog_id}")
async def delete_blog(blog_id: str, identity: AdminOnly, service: BlogService = Depends(get_blog_service)):
    return {"success": True, "data": await service.delete(identity, blog_id)}


@router.put("/{blog_id}/image")
async def upload_blog_image(blog_id: str, identity: AdminOnly, file: Optional[UploadFile] = File(None),
                            service: BlogService = Depends(get_blog_service)):
    return {"success": True, "data": await service.upload_image(identity, blog_id, file)}
