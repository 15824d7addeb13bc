"""
Studio API router: chat refinement, page generation from the checklist,
preview rendering, navigation, inspiration images and themes.
"""
from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse
from pydantic import BaseModel
from typing import Optional, List

from prototype_engine.logging_config import logger
from prototype_engine.config import settings
from prototype_engine.models import GeneratedFile, PageTask, Project
from prototype_engine.routers.projects import load_project_or_404
from prototype_engine.services.studio_service import StudioValidationError, studio_service
from prototype_engine.themes import get_available_themes
from prototype_engine.utils.file_utils import create_project_file, is_image_file
from slowapi import Limiter
from slowapi.util import get_remote_address

router = APIRouter()
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)


class PromptRequest(BaseModel):
    """Request model for a chat refinement"""
    prompt: str


class FileInfo(BaseModel):
    name: str
    size: int


class NavigateRequest(BaseModel):
    """Navigation message posted by the preview frame"""
    href: str


class NavigateResponse(BaseModel):
    file_name: str


class ActiveInspirationRequest(BaseModel):
    index: int
    active_file: Optional[str] = "index.html"


class ThemeRequest(BaseModel):
    theme: str


class ThemeInfo(BaseModel):
    name: str
    description: str


@router.get("/themes", response_model=List[ThemeInfo])
async def list_themes():
    """Available design systems."""
    return [ThemeInfo(**t) for t in get_available_themes()]


@router.post("/projects/{project_id}/prompt", response_model=Project)
@limiter.limit(settings.GENERATION_RATE_LIMIT)
async def send_prompt(request: Request, project_id: str, data: PromptRequest):
    """
    Send a refinement prompt (e.g. "Make the header sticky").

    The model returns the complete updated file set, which replaces the
    project's generated files. Generation failures come back as an
    ``error.html`` file rather than an HTTP error.
    """
    project = load_project_or_404(project_id)
    try:
        return await studio_service.generate(project, data.prompt)
    except StudioValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/projects/{project_id}/tasks", response_model=List[PageTask])
async def list_tasks(project_id: str):
    return load_project_or_404(project_id).tasks


@router.post("/projects/{project_id}/tasks/{task_name}/generate", response_model=Project)
@limiter.limit(settings.GENERATION_RATE_LIMIT)
async def generate_task_page(request: Request, project_id: str, task_name: str):
    """Generate the page for a pending checklist task."""
    project = load_project_or_404(project_id)
    try:
        return await studio_service.generate_page(project, task_name)
    except StudioValidationError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/projects/{project_id}/files", response_model=List[FileInfo])
async def list_files(project_id: str):
    project = load_project_or_404(project_id)
    return [FileInfo(name=f.name, size=len(f.content)) for f in project.generated_code]


@router.get("/projects/{project_id}/files/{file_name}", response_model=GeneratedFile)
async def get_file(project_id: str, file_name: str):
    """Source of one generated file (the code view)."""
    generated = load_project_or_404(project_id).file_named(file_name)
    if generated is None:
        raise HTTPException(status_code=404, detail=f"File not found: {file_name}")
    return generated


@router.get("/projects/{project_id}/preview/{file_name}", response_class=HTMLResponse)
async def preview_file(project_id: str, file_name: str):
    """
    Render a generated page for the preview frame.

    Placeholder images are fetched and inlined as data URLs so the sandboxed
    frame can show them.
    """
    project = load_project_or_404(project_id)
    html = await studio_service.render_preview(project, file_name)
    if html is None:
        raise HTTPException(status_code=404, detail=f"File not found: {file_name}")
    return HTMLResponse(content=html)


@router.post("/projects/{project_id}/navigate", response_model=NavigateResponse)
async def navigate(project_id: str, data: NavigateRequest):
    """Resolve a link clicked inside the preview to a generated file."""
    project = load_project_or_404(project_id)
    target = studio_service.resolve_navigation(project, data.href)
    if target is None:
        raise HTTPException(status_code=404, detail=f"Navigation to non-existent file blocked: {data.href}")
    return NavigateResponse(file_name=target)


@router.post("/projects/{project_id}/inspirations", response_model=Project)
@limiter.limit(settings.GENERATION_RATE_LIMIT)
async def add_inspiration(
    request: Request,
    project_id: str,
    image: UploadFile = File(...),
    active_file: str = Form("index.html"),
):
    """
    Upload a new inspiration image and make it active.

    The active page is regenerated with a visual style derived from the new image.
    """
    project = load_project_or_404(project_id)
    image_file = await create_project_file(image)
    if not is_image_file(image_file):
        raise HTTPException(status_code=400, detail="Inspiration image must be PNG, JPEG or WebP")

    logger.info("Inspiration image uploaded", project_id=project_id, name=image_file.name)
    return await studio_service.add_inspiration_image(project, image_file, active_file)


@router.put("/projects/{project_id}/inspirations/active", response_model=Project)
@limiter.limit(settings.GENERATION_RATE_LIMIT)
async def select_inspiration(request: Request, project_id: str, data: ActiveInspirationRequest):
    project = load_project_or_404(project_id)
    try:
        return await studio_service.select_inspiration(
            project, data.index, data.active_file or "index.html"
        )
    except StudioValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put("/projects/{project_id}/theme", response_model=Project)
async def set_theme(project_id: str, data: ThemeRequest):
    project = load_project_or_404(project_id)
    try:
        return studio_service.select_theme(project, data.theme)
    except StudioValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
