"""
Shutterbox Backend — Local File Serving
=========================================

What:  Serves images stored by the `local` upload provider.
Who:   <img> tags pointing at image_url / thumbnail_url of local-provider photos.
When:  Only meaningful when UPLOAD_PROVIDER=local; with a remote provider the
       files live on a CDN and this route answers 404.

Thumbnails:
    ?w=400&h=300 returns a Pillow-downscaled copy (aspect ratio kept).
    If the stored file cannot be decoded, the original is served instead.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse, Response
from PIL import Image

from shutterbox.exceptions import NotFoundError
from shutterbox.services.upload import LocalProvider, UploadProvider, get_upload_provider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Files"])

CACHE_HEADERS = {"Cache-Control": "public, max-age=86400"}


@router.get(
    "/files/{file_path:path}",
    summary="Serve a locally stored image",
    responses={200: {"description": "Image file"}, 404: {"description": "File not found"}},
)
async def serve_file(
    file_path: str,
    w: Optional[int] = Query(default=None, ge=1, le=4000, description="Max thumbnail width"),
    h: Optional[int] = Query(default=None, ge=1, le=4000, description="Max thumbnail height"),
    provider: UploadProvider = Depends(get_upload_provider),
) -> Response:
    if not isinstance(provider, LocalProvider):
        raise NotFoundError(resource="file", resource_id=file_path)

    # resolve() rejects paths escaping the storage root (e.g. ../../etc/passwd)
    path = provider.resolve(file_path)
    if not path.is_file():
        raise NotFoundError(resource="file", resource_id=file_path)

    if w or h:
        try:
            content, media_type = await run_in_threadpool(provider.render_thumbnail, path, w, h)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            logger.warning("Could not render thumbnail for %s: %s", file_path, e)
        else:
            return Response(content=content, media_type=media_type, headers=CACHE_HEADERS)

    return FileResponse(path=str(path), headers=CACHE_HEADERS)
