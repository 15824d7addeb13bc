"""
Prototype generation service using Google Gemini.

Three calls drive a project: consolidating the brief (PRD), extracting the
page checklist from it, and generating or revising the multi-file
prototype.
"""
import html
import json
import re
import time
from typing import Any, Callable, Dict, List, Optional

import google.generativeai as genai

from prototype_engine.config import settings
from prototype_engine.logging_config import logger
from prototype_engine.models import GeneratedFile, Project, ProjectFile
from prototype_engine.services.llm_response_handler import LLMResponseHandler
from prototype_engine.services.prototype_system_prompt import (
    BRIEF_PROMPT_TEMPLATE,
    PROTOTYPE_SYSTEM_PROMPT,
    TASKS_PROMPT,
)
from prototype_engine.themes import theme_prompt_section
from prototype_engine.utils.file_utils import base64_to_bytes, base64_to_text, text_to_base64


class BriefConsolidationError(Exception):
    """Raised when the consolidated project brief could not be produced"""


ModelFactory = Callable[[Optional[str]], Any]


def _default_model_factory(system_instruction: Optional[str] = None):
    return genai.GenerativeModel(settings.GEMINI_MODEL, system_instruction=system_instruction)


def file_to_generative_part(project_file: ProjectFile) -> Dict[str, Any]:
    return {
        "mime_type": project_file.type,
        "data": base64_to_bytes(project_file.content),
    }


def prd_file_name(project_name: str) -> str:
    slug = re.sub(r"\s+", "-", project_name.lower())
    return f"{slug}-prd.md"


def error_page(message: str, raw_text: Optional[str] = None) -> List[GeneratedFile]:
    content = f"<h1>Generation Error</h1><p>{html.escape(message)}</p>"
    if raw_text is not None:
        content += f"<pre>{html.escape(raw_text)}</pre>"
    return [GeneratedFile(name="error.html", content=content)]


class GeminiPrototypeGenerator:
    """Prototype generator backed by the Gemini API"""

    def __init__(self, model_factory: Optional[ModelFactory] = None):
        """Initialize Gemini client"""
        if model_factory is None:
            if not settings.GEMINI_API_KEY:
                raise ValueError("GEMINI_API_KEY not configured")
            genai.configure(api_key=settings.GEMINI_API_KEY)
            model_factory = _default_model_factory

        self._model_factory = model_factory
        logger.info(f"Initialized GeminiPrototypeGenerator with model: {settings.GEMINI_MODEL}")

    async def consolidate_project_brief(
        self,
        project_name: str,
        core_prompt: str,
        original_prd: Optional[ProjectFile] = None
    ) -> ProjectFile:
        """
        Synthesize name, core prompt and an optional user document into one PRD.

        Args:
            project_name: Name of the project
            core_prompt: The user's core objective
            original_prd: Optional user-provided requirements document

        Returns:
            The consolidated PRD as a Markdown ProjectFile

        Raises:
            BriefConsolidationError: if the model call or response fails
        """
        try:
            start_time = time.time()
            prompt = BRIEF_PROMPT_TEMPLATE.format(project_name=project_name, core_prompt=core_prompt)

            parts: List[Any] = [prompt]
            if original_prd:
                parts.append("\n\nHere is the user-provided document for analysis:")
                parts.append(file_to_generative_part(original_prd))

            model = self._model_factory(None)
            response = await model.generate_content_async([{"role": "user", "parts": parts}])
            markdown_text = LLMResponseHandler.extract_text(response)

            logger.info(
                "Project brief consolidated",
                project_name=project_name,
                has_user_document=bool(original_prd),
                chars=len(markdown_text),
                execution_time=time.time() - start_time
            )

            return ProjectFile(
                name=prd_file_name(project_name),
                type="text/markdown",
                content=text_to_base64(markdown_text),
            )

        except Exception as e:
            logger.error("Error consolidating project brief", error=str(e), exc_info=True)
            raise BriefConsolidationError("Failed to create a consolidated project brief.") from e

    async def extract_tasks_from_prd(self, prd_file: ProjectFile) -> List[str]:
        """
        List the pages the PRD asks for.

        Returns an empty list if the model fails or answers in the wrong shape.
        """
        try:
            decoded_content = base64_to_text(prd_file.content)
            contents = [{
                "role": "user",
                "parts": [TASKS_PROMPT, f"\n\nPRD Content:\n\n{decoded_content}"],
            }]

            model = self._model_factory(None)
            response = await model.generate_content_async(
                contents,
                generation_config={"response_mime_type": "application/json"},
            )

            parsed = LLMResponseHandler.parse_json(LLMResponseHandler.extract_text(response))
            pages = parsed.get("pages") if isinstance(parsed, dict) else None
            if isinstance(pages, list):
                names = [str(p).strip() for p in pages if str(p).strip()]
                logger.info("Extracted tasks from PRD", count=len(names))
                return names
            return []

        except Exception as e:
            logger.error("Error extracting tasks from PRD", error=str(e))
            return []

    def _build_contents(
        self,
        project: Project,
        new_prompt: str,
        include_inspiration: bool = False
    ) -> List[Dict[str, Any]]:
        history = list(project.chat_history)
        # The caller usually appended the new prompt already; send it once.
        if history and history[-1].role == "user" and history[-1].text == new_prompt:
            history = history[:-1]

        contents: List[Dict[str, Any]] = [
            {"role": msg.role, "parts": [msg.text]} for msg in history
        ]

        parts: List[Any] = [new_prompt]
        if not project.generated_code:
            if project.prd_document:
                parts.append("\n\nThis is the PRIMARY and ONLY source of truth for ALL content and structure. You MUST adhere to it strictly:")
                parts.append(file_to_generative_part(project.prd_document))
            inspiration = project.active_inspiration_image()
            if inspiration:
                parts.append("\n\nUse this image as inspiration for the VISUAL DESIGN ONLY (colors, fonts, mood):")
                parts.append(file_to_generative_part(inspiration))
        else:
            if project.prd_document:
                parts.append("\n\nReminder: This is the PRIMARY source of truth for all content and structure. Ensure your changes are consistent with it.")
                parts.append(file_to_generative_part(project.prd_document))
            inspiration = project.active_inspiration_image()
            if inspiration and include_inspiration:
                parts.append("\n\nThis is the newly selected inspiration image for the VISUAL DESIGN ONLY:")
                parts.append(file_to_generative_part(inspiration))
            parts.append("\n\nHere is the current file structure. Modify it based on my request and respond with the full, updated JSON object of all files.")
            parts.append(json.dumps([f.model_dump() for f in project.generated_code], indent=2))

        contents.append({"role": "user", "parts": parts})
        return contents

    def _system_instruction(self, project: Project) -> str:
        theme_section = theme_prompt_section(project.theme)
        if theme_section:
            return f"{PROTOTYPE_SYSTEM_PROMPT}\n\n{theme_section}"
        return PROTOTYPE_SYSTEM_PROMPT

    async def generate_prototype(
        self,
        project: Project,
        new_prompt: str,
        include_inspiration: bool = False
    ) -> List[GeneratedFile]:
        """
        Generate or revise the project's file set.

        Never raises: failures come back as a single ``error.html`` file so
        the preview shows what went wrong.
        ``include_inspiration`` re-attaches the active inspiration image on a
        revision (used for redesigns after the image changes).
        """
        try:
            start_time = time.time()
            contents = self._build_contents(project, new_prompt, include_inspiration)
            model = self._model_factory(self._system_instruction(project))

            logger.info(
                "Calling Gemini for prototype",
                project_id=project.id,
                model=settings.GEMINI_MODEL,
                turns=len(contents),
                existing_files=len(project.generated_code)
            )

            response = await model.generate_content_async(
                contents,
                generation_config={
                    "temperature": settings.TEMPERATURE,
                    "top_p": settings.TOP_P,
                    "top_k": settings.TOP_K,
                },
            )
            response_text = LLMResponseHandler.extract_text(response)

        except Exception as e:
            logger.error("Error calling Gemini API", error=str(e), exc_info=True)
            return error_page("Error generating prototype. Please check the server logs for details.")

        try:
            parsed = LLMResponseHandler.parse_json(response_text)
            files = parsed.get("files") if isinstance(parsed, dict) else None
            if not isinstance(files, list):
                raise ValueError("Invalid JSON structure: 'files' array not found.")
            generated = [GeneratedFile.model_validate(f) for f in files]
        except Exception as e:
            logger.error(
                "Failed to parse Gemini response as JSON",
                error=str(e),
                raw_response=response_text[:2000]
            )
            return error_page("The AI's response could not be processed.", raw_text=response_text)

        logger.info(
            "Prototype generated",
            project_id=project.id,
            files=[f.name for f in generated],
            execution_time=time.time() - start_time
        )
        return generated


_generator: Optional[GeminiPrototypeGenerator] = None


def get_generator() -> GeminiPrototypeGenerator:
    global _generator
    if _generator is None:
        _generator = GeminiPrototypeGenerator()
    return _generator
