"""
Project management API router: create, list, rename, delete, and the
storage recovery endpoints.
"""
from fastapi import APIRouter, File, Form, HTTPException, Request, Response, UploadFile
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel
from typing import Optional, List

from prototype_engine.logging_config import logger
from prototype_engine.config import settings
from prototype_engine.models import Project
from prototype_engine.services.gemini_prototype_generator import BriefConsolidationError
from prototype_engine.services.studio_service import StudioValidationError, studio_service
from prototype_engine.storage.migrations import CURRENT_DATA_VERSION
from prototype_engine.storage.project_store import ProjectNotFound, get_project_store
from prototype_engine.utils.file_utils import create_project_file, is_document_file, is_image_file
from slowapi import Limiter
from slowapi.util import get_remote_address

router = APIRouter()
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)


class ProjectSummary(BaseModel):
    """Dashboard card data, without file payloads"""
    id: str
    name: str
    last_modified: str
    theme: str
    file_count: int
    tasks_total: int
    tasks_completed: int
    has_inspiration_image: bool

    @classmethod
    def from_project(cls, project: Project) -> "ProjectSummary":
        return cls(
            id=project.id,
            name=project.name,
            last_modified=project.last_modified,
            theme=project.theme,
            file_count=len(project.generated_code),
            tasks_total=len(project.tasks),
            tasks_completed=sum(1 for t in project.tasks if t.status == "completed"),
            has_inspiration_image=bool(project.inspiration_images),
        )


class RenameProjectRequest(BaseModel):
    name: str


class StorageStatusResponse(BaseModel):
    data_version: int
    project_count: int
    load_error: bool
    backup_key: Optional[str] = None
    saving_enabled: bool


class BackupsResponse(BaseModel):
    backups: List[str]


def load_project_or_404(project_id: str) -> Project:
    try:
        return get_project_store().get(project_id)
    except ProjectNotFound:
        raise HTTPException(status_code=404, detail=f"Project not found: {project_id}")


@router.get("/projects", response_model=List[ProjectSummary])
async def list_projects():
    """List all projects for the dashboard."""
    return [ProjectSummary.from_project(p) for p in get_project_store().list()]


@router.get("/projects/storage/status", response_model=StorageStatusResponse)
async def storage_status():
    """
    Report how the stored projects were loaded.

    When ``load_error`` is true the stored data was unreadable and has been
    copied to ``backup_key``; nothing is lost.
    """
    store = get_project_store()
    return StorageStatusResponse(
        data_version=CURRENT_DATA_VERSION,
        project_count=len(store.list()),
        load_error=store.load_result.error_occurred,
        backup_key=store.load_result.backup_key,
        saving_enabled=store.allow_saving,
    )


@router.get("/projects/storage/backups", response_model=BackupsResponse)
async def list_backups():
    return BackupsResponse(backups=get_project_store().list_backups())


@router.get("/projects/storage/backups/{backup_key}", response_class=PlainTextResponse)
async def get_backup(backup_key: str):
    """Raw stored blob of a quarantined backup, for manual recovery."""
    raw = get_project_store().get_backup(backup_key)
    if raw is None:
        raise HTTPException(status_code=404, detail=f"Backup not found: {backup_key}")
    return PlainTextResponse(raw, media_type="application/json")


@router.get("/projects/{project_id}", response_model=Project)
async def get_project(project_id: str):
    return load_project_or_404(project_id)


@router.post("/projects", response_model=Project, status_code=201)
@limiter.limit(settings.CREATE_RATE_LIMIT)
async def create_project(
    request: Request,
    name: str = Form(...),
    core_prompt: str = Form(...),
    inspiration_image: Optional[UploadFile] = File(None),
    prd_document: Optional[UploadFile] = File(None),
):
    """
    Create a project.

    This endpoint:
    1. Consolidates the name, core prompt and optional document into a PRD
    2. Extracts the page checklist from the PRD
    3. Generates the homepage (index.html)

    Parameters:
    - name: Project name
    - core_prompt: What the product is
    - inspiration_image: Optional image guiding the visual design (.jpg, .png, .webp)
    - prd_document: Optional requirements document (.md, .txt, .pdf, .doc, .docx)
    """
    try:
        inspiration_file = await create_project_file(inspiration_image) if inspiration_image else None
        if inspiration_file and not is_image_file(inspiration_file):
            raise HTTPException(status_code=400, detail="Inspiration image must be PNG, JPEG or WebP")
        prd_file = await create_project_file(prd_document) if prd_document else None
        if prd_file and not is_document_file(prd_file):
            raise HTTPException(status_code=400, detail="Document must be .md, .txt, .pdf, .doc or .docx")

        logger.info(
            "Project creation request received",
            name=name,
            has_inspiration_image=bool(inspiration_file),
            has_prd_document=bool(prd_file)
        )

        return await studio_service.create_project(
            name=name,
            core_prompt=core_prompt,
            inspiration_image=inspiration_file,
            prd_document=prd_file,
        )

    except HTTPException:
        raise
    except StudioValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except BriefConsolidationError as e:
        logger.error(f"Failed to create project: {str(e)}")
        raise HTTPException(status_code=502, detail=str(e))


@router.patch("/projects/{project_id}", response_model=Project)
async def rename_project(project_id: str, data: RenameProjectRequest):
    load_project_or_404(project_id)
    try:
        return get_project_store().rename(project_id, data.name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/projects/{project_id}", status_code=204)
async def delete_project(project_id: str):
    try:
        get_project_store().delete(project_id)
    except ProjectNotFound:
        raise HTTPException(status_code=404, detail=f"Project not found: {project_id}")
    return Response(status_code=204)
