from fastapi import APIRouter
from sharelink.api.v1.endpoints import links, documents, files, contacts

api_router = APIRouter()

api_router.include_router(links.router, prefix="/links", tags=["links"])
api_router.include_router(documents.router, prefix="/documents", tags=["documents"])
api_router.include_router(contacts.router, prefix="/contacts", tags=["contacts"])
api_router.include_router(files.router, prefix="/files", tags=["files"])
