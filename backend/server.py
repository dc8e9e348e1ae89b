# diskmanager/backend/server.py

from fastapi import FastAPI, APIRouter, HTTPException, Depends, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, PlainTextResponse, Response
import asyncio
import os
import shutil
from urllib.parse import quote
from pathlib import Path
from pydantic import BaseModel
from typing import List, Optional
from backend.archiver import build_zip_archive
from backend.limits import BodySizeLimitMiddleware
from backend.paths import InvalidPathError, resolve_path
from backend.uploads import MalformedMultipartError, MultipartFileWriter, parse_multipart_boundary
from shared.config import Settings, load_settings
from shared.logging_config import setup_logger

# Set up logger
logger = setup_logger(__name__)

class PathRequest(BaseModel):
    path: str

class DirectoryEntry(BaseModel):
    name: str
    is_dir: bool

router = APIRouter()

def get_storage_dir(request: Request) -> Path:
    return request.app.state.STORAGE_DIR

def resolve_or_400(storage_dir: Path, path: Optional[str]) -> Path:
    try:
        return resolve_path(storage_dir, path)
    except InvalidPathError as e:
        raise HTTPException(status_code=400, detail=str(e))

def attachment_disposition(filename: str) -> str:
    """Content-Disposition for a download, RFC 5987 encoded when the name is not URL-safe ASCII."""
    quoted = quote(filename)
    if quoted != filename:
        return f"attachment; filename*=utf-8''{quoted}"
    return f'attachment; filename="{filename}"'

@router.get("/", response_class=PlainTextResponse)
async def root():
    return "Disk Manager Backend Running"

@router.get("/ping")
async def ping():
    """Simple endpoint to check if the server is online"""
    logger.debug("Received ping request")
    return {"status": "online"}

@router.post("/create_folder", response_class=PlainTextResponse)
def create_folder(payload: PathRequest, storage_dir: Path = Depends(get_storage_dir)):
    """Create a folder, including any missing parents. Existing targets are a conflict."""
    target_path = resolve_or_400(storage_dir, payload.path)

    if target_path.exists():
        logger.warning(f"Create folder conflict, already exists: {target_path}")
        raise HTTPException(status_code=409, detail="Folder or file already exists")

    try:
        target_path.mkdir(parents=True)
    except FileExistsError:
        logger.warning(f"Create folder conflict, created concurrently: {target_path}")
        raise HTTPException(status_code=409, detail="Folder or file already exists")
    except OSError as e:
        logger.error(f"Error creating folder {target_path}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))

    logger.info(f"Folder created: {target_path}")
    return "Folder created"

@router.post("/upload", response_class=PlainTextResponse)
async def upload_files(
    request: Request,
    path: Optional[str] = Query(None, description="Destination directory"),
    storage_dir: Path = Depends(get_storage_dir),
):
    """
    Write every file part of a multipart body into the destination directory.

    The body is parsed as it streams in and each part is written as soon as it
    is complete, overwriting files of the same name. A failing part aborts the
    request but earlier parts stay on disk.
    """
    target_dir = resolve_or_400(storage_dir, path)

    try:
        boundary = parse_multipart_boundary(request.headers.get("content-type", ""))
    except MalformedMultipartError as e:
        logger.warning(f"Upload rejected: {str(e)}")
        raise HTTPException(status_code=400, detail=str(e))

    writer = MultipartFileWriter(target_dir, boundary)
    try:
        async for chunk in request.stream():
            if chunk:
                writer.feed(chunk)
        writer.finish()
    except MalformedMultipartError as e:
        logger.warning(f"Malformed multipart body after {len(writer.written)} files: {str(e)}")
        raise HTTPException(status_code=400, detail=str(e))
    except OSError as e:
        logger.error(f"Error saving upload to {target_dir}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))
    finally:
        writer.discard_partial()

    logger.info(f"Upload to {target_dir} complete: {len(writer.written)} files written")
    return "File uploaded"

@router.get("/list", response_model=List[DirectoryEntry])
def list_directory(
    path: Optional[str] = Query(None, description="Directory path to list"),
    storage_dir: Path = Depends(get_storage_dir),
):
    """
    List the immediate children of a directory.

    A missing path, or one that is not a directory, gives an empty list.
    """
    target_path = resolve_or_400(storage_dir, path)

    entries = []
    try:
        with os.scandir(target_path) as it:
            for entry in it:
                try:
                    is_dir = entry.is_dir(follow_symlinks=False)
                except OSError:
                    is_dir = False
                entries.append(DirectoryEntry(name=entry.name, is_dir=is_dir))
    except OSError as e:
        logger.debug(f"Could not list {target_path}, returning {len(entries)} entries: {e}")
        return entries

    logger.info(f"Listed contents of {target_path}: {len(entries)} items")
    return entries

@router.get("/download")
async def download(
    path: str = Query(..., description="Path of file or folder to download"),
    storage_dir: Path = Depends(get_storage_dir),
):
    """
    Download a file as-is, or a folder as an uncompressed zip archive.
    The archive is built in full in a worker thread before it is sent.
    """
    effective_path = resolve_or_400(storage_dir, path)

    if not effective_path.exists():
        logger.warning(f"Download target not found: {effective_path}")
        raise HTTPException(status_code=404, detail="Not found")

    if effective_path.is_file():
        logger.info(f"File download requested: {effective_path}")
        return FileResponse(
            effective_path,
            media_type="application/octet-stream",
            filename=effective_path.name,
        )

    try:
        logger.info(f"Folder download requested: {effective_path}")
        zip_data = await asyncio.to_thread(build_zip_archive, effective_path)
    except Exception as e:
        logger.error(f"Error creating zip file for {effective_path}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))

    zip_filename = f"{effective_path.name}.zip"
    logger.info(f"Sending folder: {zip_filename}, size: {len(zip_data)} bytes")
    return Response(
        content=zip_data,
        media_type="application/zip",
        headers={"Content-Disposition": attachment_disposition(zip_filename)},
    )

@router.delete("/delete", response_class=PlainTextResponse)
def delete(
    path: str = Query(..., description="Path of file or folder to delete"),
    storage_dir: Path = Depends(get_storage_dir),
):
    """Delete a file, or a folder with everything in it."""
    target_path = resolve_or_400(storage_dir, path)

    if not target_path.exists():
        logger.warning(f"Delete target not found: {target_path}")
        raise HTTPException(status_code=404, detail="Not found")

    try:
        if target_path.is_dir():
            shutil.rmtree(target_path)
        else:
            target_path.unlink()
    except OSError as e:
        logger.error(f"Error deleting {target_path}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))

    logger.info(f"Deleted: {target_path}")
    return "Deleted"

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application around a storage root, creating the root if absent."""
    if settings is None:
        settings = load_settings()

    app = FastAPI(title="Disk Manager")
    app.state.settings = settings
    app.state.STORAGE_DIR = Path(settings.storage_dir).resolve()

    os.makedirs(app.state.STORAGE_DIR, exist_ok=True)
    logger.info(f"Storage directory initialized at {app.state.STORAGE_DIR}")

    app.include_router(router)
    app.add_middleware(BodySizeLimitMiddleware, max_body_size=settings.max_body_size)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )
    return app
