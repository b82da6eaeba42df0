from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse
from sharelink.api.deps import get_object_store
from sharelink.core.exceptions import InvalidSignatureException, LinkNotFoundException
from sharelink.external.object_store import ObjectStore, LocalObjectStore

router = APIRouter()


@router.get("/{path:path}")
async def download_file(
    path: str,
    expires: int = Query(...),
    signature: str = Query(...),
    object_store: ObjectStore = Depends(get_object_store)
):
    """
    Serve a file of the local object store behind a signed URL.
    The signature covers the path and the expiry timestamp.
    """
    if not isinstance(object_store, LocalObjectStore):
        raise LinkNotFoundException(detail="File not found")

    if not object_store.verify_signature(path, expires, signature):
        raise InvalidSignatureException()

    file_path = object_store.resolve_path(path)
    if not file_path.is_file():
        raise LinkNotFoundException(detail="File not found")

    return FileResponse(path=str(file_path), filename=file_path.name)
