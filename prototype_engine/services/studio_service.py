"""
Studio workflows: creating a project and iterating on its prototype.

Every call here is a short sequence of awaited model calls followed by a
single store update. The store is the only shared state.
"""
import re
from typing import List, Optional

from prototype_engine.logging_config import logger
from prototype_engine.models import ChatMessage, GeneratedFile, PageTask, Project, ProjectData, ProjectFile
from prototype_engine.services.gemini_prototype_generator import GeminiPrototypeGenerator, get_generator
from prototype_engine.services.image_embedder import embed_unsplash_images
from prototype_engine.services.navigation_bridge import ensure_navigation_bridge, normalize_navigation_target
from prototype_engine.services.prototype_system_prompt import (
    INITIAL_GENERATION_PROMPT,
    INITIAL_MODEL_REPLY,
    PAGE_REQUEST_TEMPLATE,
    REDESIGN_PROMPT_TEMPLATE,
    UPDATED_MODEL_REPLY,
)
from prototype_engine.storage.project_store import ProjectStore, get_project_store
from prototype_engine.themes import is_known_theme


TASK_PROMPT_PATTERN = re.compile(r"generate the '([^']+)' page", re.IGNORECASE)

PREVIEW_ERROR_PAGE = (
    "<html><body><h1>Error</h1><p>Could not process and display the prototype content. "
    "Please check the server logs.</p></body></html>"
)


class StudioValidationError(ValueError):
    """Bad user input for a studio action"""


def prompt_to_task_name(prompt: str) -> Optional[str]:
    match = TASK_PROMPT_PATTERN.search(prompt)
    return match.group(1) if match else None


def mark_homepage_task(tasks: List[PageTask]) -> List[PageTask]:
    """Complete the first home/index task with index.html."""
    updated = list(tasks)
    for index, task in enumerate(updated):
        lowered = task.name.lower()
        if "home" in lowered or "index" in lowered:
            updated[index] = task.model_copy(update={"status": "completed", "file_name": "index.html"})
            break
    return updated


def complete_task(tasks: List[PageTask], task_name: str, file_name: Optional[str]) -> List[PageTask]:
    return [
        task.model_copy(update={"status": "completed", "file_name": file_name})
        if task.name.lower() == task_name.lower()
        else task
        for task in tasks
    ]


def with_navigation_bridge(files: List[GeneratedFile]) -> List[GeneratedFile]:
    return [
        GeneratedFile(name=f.name, content=ensure_navigation_bridge(f.content))
        if f.name.lower().endswith((".html", ".htm"))
        else f
        for f in files
    ]


class StudioService:
    def __init__(
        self,
        store: Optional[ProjectStore] = None,
        generator: Optional[GeminiPrototypeGenerator] = None
    ):
        self._store = store
        self._generator = generator

    @property
    def store(self) -> ProjectStore:
        return self._store or get_project_store()

    @property
    def generator(self) -> GeminiPrototypeGenerator:
        return self._generator or get_generator()

    async def create_project(
        self,
        name: str,
        core_prompt: str,
        inspiration_image: Optional[ProjectFile] = None,
        prd_document: Optional[ProjectFile] = None
    ) -> Project:
        """
        Build the brief, derive the checklist, generate the homepage and
        store the new project.

        Raises:
            StudioValidationError: blank name or core prompt
            BriefConsolidationError: the brief could not be produced
        """
        name = (name or "").strip()
        core_prompt = (core_prompt or "").strip()
        if not name or not core_prompt:
            raise StudioValidationError("Project name and core prompt are required")

        logger.info("Building brief", project_name=name)
        consolidated_prd = await self.generator.consolidate_project_brief(name, core_prompt, prd_document)

        logger.info("Extracting tasks", project_name=name)
        task_names = await self.generator.extract_tasks_from_prd(consolidated_prd)
        tasks = [PageTask(name=task_name) for task_name in task_names]

        logger.info("Generating homepage", project_name=name)
        chat_history = [ChatMessage(role="user", text=INITIAL_GENERATION_PROMPT)]
        draft = Project(
            id="",
            last_modified="",
            name=name,
            core_prompt=core_prompt,
            inspiration_images=[inspiration_image] if inspiration_image else [],
            active_inspiration_image_index=0,
            prd_document=consolidated_prd,
            chat_history=chat_history,
            tasks=tasks,
        )
        generated_code = await self.generator.generate_prototype(draft, INITIAL_GENERATION_PROMPT)

        project_data = ProjectData(
            **draft.model_dump(exclude={"id", "last_modified"}),
        )
        project_data.generated_code = with_navigation_bridge(generated_code)
        project_data.chat_history = chat_history + [ChatMessage(role="model", text=INITIAL_MODEL_REPLY)]
        project_data.tasks = mark_homepage_task(tasks)

        return self.store.create(project_data)

    async def generate(
        self,
        project: Project,
        prompt_text: str,
        include_inspiration: bool = False,
        task_name: Optional[str] = None
    ) -> Project:
        """Run one chat turn against the prototype and save the result.

        ``task_name`` names the checklist task this turn builds; without it the
        task is read from a "generate the '<Task>' page" prompt.
        """
        prompt_text = (prompt_text or "").strip()
        if not prompt_text:
            raise StudioValidationError("Prompt cannot be empty")

        updated_history = project.chat_history + [ChatMessage(role="user", text=prompt_text)]
        old_file_names = {f.name for f in project.generated_code}

        project_for_api = project.model_copy(update={"chat_history": updated_history})
        new_files = await self.generator.generate_prototype(
            project_for_api, prompt_text, include_inspiration=include_inspiration
        )
        new_file_name = next((f.name for f in new_files if f.name not in old_file_names), None)

        updated_tasks = project.tasks
        completed_task_name = task_name or prompt_to_task_name(prompt_text)
        if completed_task_name:
            updated_tasks = complete_task(project.tasks, completed_task_name, new_file_name)

        updated_project = project.model_copy(update={
            "generated_code": with_navigation_bridge(new_files),
            "chat_history": updated_history + [ChatMessage(role="model", text=UPDATED_MODEL_REPLY)],
            "tasks": updated_tasks,
        })
        updated_project.touch()

        logger.info(
            "Prototype updated",
            project_id=project.id,
            new_file=new_file_name,
            completed_task=completed_task_name
        )
        return self.store.update(updated_project)

    async def generate_page(self, project: Project, task_name: str) -> Project:
        if not any(t.name.lower() == task_name.lower() for t in project.tasks):
            raise StudioValidationError(f"Unknown task: {task_name}")
        return await self.generate(
            project,
            PAGE_REQUEST_TEMPLATE.format(task_name=task_name),
            task_name=task_name,
        )

    async def update_inspirations(
        self,
        project: Project,
        images: List[ProjectFile],
        active_index: int,
        active_file: str = "index.html"
    ) -> Project:
        """
        Replace the inspiration images and active selection.

        A change of active image triggers a full redesign of the active page;
        anything else is just saved.
        """
        if images and not 0 <= active_index < len(images):
            raise StudioValidationError(f"Inspiration image index out of range: {active_index}")

        previous_active = project.active_inspiration_image()
        updated_project = project.model_copy(update={
            "inspiration_images": images,
            "active_inspiration_image_index": active_index,
        })
        new_active = updated_project.active_inspiration_image()

        previous_content = previous_active.content if previous_active else None
        new_content = new_active.content if new_active else None
        if previous_content != new_content:
            page = active_file.split(".")[0] or "current"
            logger.info("Active inspiration changed, redesigning", project_id=project.id, page=page)
            return await self.generate(
                updated_project,
                REDESIGN_PROMPT_TEMPLATE.format(page=page),
                include_inspiration=True,
            )

        updated_project.touch()
        return self.store.update(updated_project)

    async def add_inspiration_image(
        self,
        project: Project,
        image: ProjectFile,
        active_file: str = "index.html"
    ) -> Project:
        """Append an image and make it the active one."""
        images = project.inspiration_images + [image]
        return await self.update_inspirations(project, images, len(images) - 1, active_file)

    async def select_inspiration(
        self,
        project: Project,
        index: int,
        active_file: str = "index.html"
    ) -> Project:
        if index == project.active_inspiration_image_index:
            return project
        return await self.update_inspirations(project, project.inspiration_images, index, active_file)

    def resolve_navigation(self, project: Project, href: str) -> Optional[str]:
        target = normalize_navigation_target(href)
        if target and project.file_named(target):
            return target
        logger.warning("Navigation to non-existent file blocked", project_id=project.id, href=href)
        return None

    async def render_preview(self, project: Project, file_name: str) -> Optional[str]:
        """HTML for the preview frame, or None when the file does not exist."""
        generated = project.file_named(file_name)
        if generated is None:
            return None
        if not generated.content:
            return ""
        try:
            return await embed_unsplash_images(generated.content)
        except Exception as e:
            logger.error("Error embedding images", project_id=project.id, file=file_name, error=str(e))
            return PREVIEW_ERROR_PAGE

    def select_theme(self, project: Project, theme: str) -> Project:
        if not is_known_theme(theme):
            raise StudioValidationError(f"Unknown theme: {theme}")
        updated_project = project.model_copy(update={"theme": theme})
        updated_project.touch()
        return self.store.update(updated_project)


studio_service = StudioService()
