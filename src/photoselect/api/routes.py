"""Gallery API endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from ..container import ServiceContainer
from ..errors import PhotoSelectError, StorageNotFoundError, ValidationError
from ..models import ManagedFolder
from .schemas import DebugResponse, SelectionRequest, SelectionResponse, ZipType

router = APIRouter(prefix="/api", tags=["gallery"])


def get_container(request: Request) -> ServiceContainer:
    """The service container set up by ``create_app``."""
    container: ServiceContainer = request.app.state.container
    return container


@router.get("/images")
async def list_images(container: ServiceContainer = Depends(get_container)) -> Any:
    """Preview images with temporary links, served from cache when fresh."""
    try:
        images = await container.link_cache.get_images()
    except PhotoSelectError as e:
        container.status_log.add(f"API Images Error: {e}", level="error")
        return JSONResponse(status_code=500, content={"error": "Failed"})
    return [image.to_dict() for image in images]


@router.get("/final")
async def list_final_images(container: ServiceContainer = Depends(get_container)) -> Any:
    """Delivered images with original and mobile links.

    Also starts a final optimization pass in the background without waiting for it.
    """
    container.tasks.spawn(container.optimizer.optimize_final(), name="optimize_final")
    try:
        images = await container.link_cache.get_final_images()
    except PhotoSelectError as e:
        container.status_log.add(f"API Final Error: {e}", level="error")
        return JSONResponse(status_code=500, content={"error": "Failed"})
    return [image.to_dict() for image in images]


@router.get("/final/zip")
async def download_final_zip(
    zip_type: ZipType = Query(default=ZipType.ORIGINAL, alias="type"),
    container: ServiceContainer = Depends(get_container),
) -> Response:
    """The whole final folder (or its mobile previews) as one zip attachment."""
    folder = ManagedFolder.FINAL_WEB if zip_type is ZipType.MOBILE else ManagedFolder.FINAL
    target = container.settings.folders.path(folder)

    try:
        if not await container.storage.folder_exists(target):
            return PlainTextResponse("Target folder not found", status_code=404)

        container.status_log.add(f"Starting ZIP download for {zip_type.value}...")
        data = await container.storage.download_zip(target)
    except StorageNotFoundError:
        return PlainTextResponse("Target folder not found", status_code=404)
    except PhotoSelectError as e:
        container.status_log.add(f"ZIP API Error: {e}", level="error")
        return PlainTextResponse("ZIP generation failed", status_code=500)

    container.status_log.add(f"ZIP download finished for {zip_type.value}")
    return Response(
        content=data,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="photos_{zip_type.value}.zip"'},
    )


@router.post("/select", response_model=SelectionResponse)
async def submit_selection(
    body: SelectionRequest, container: ServiceContainer = Depends(get_container)
) -> Any:
    """Record the client's selection as one file in the Selections folder."""
    try:
        submission = await container.selections.submit(body.user_name, body.selected_images)
    except ValidationError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    except PhotoSelectError as e:
        container.status_log.add(f"Selection save failed: {e}", level="error")
        return JSONResponse(status_code=500, content={"error": "Failed to save selection"})
    return SelectionResponse(message="Saved to storage", file_name=submission.file_name)


@router.get("/debug", response_model=DebugResponse)
async def debug_status(container: ServiceContainer = Depends(get_container)) -> Any:
    """Folder counts and the recent status log."""
    folders = container.settings.folders
    try:
        source_entries = await container.storage.list_folder(folders.path(ManagedFolder.SOURCE))
        web_entries = await container.storage.list_folder(folders.path(ManagedFolder.WEB))
    except PhotoSelectError as e:
        return JSONResponse(status_code=500, content={"error": str(e), "logs": container.status_log.lines()})
    return DebugResponse(
        source_count=len(source_entries),
        web_count=len(web_entries),
        logs=container.status_log.lines(),
    )
