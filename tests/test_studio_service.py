import asyncio
import base64

import pytest

from prototype_engine.models import GeneratedFile, PageTask, ProjectFile
from prototype_engine.services.gemini_prototype_generator import BriefConsolidationError
from prototype_engine.services.navigation_bridge import has_navigation_bridge
from prototype_engine.services.studio_service import (
    StudioService,
    StudioValidationError,
    complete_task,
    mark_homepage_task,
    prompt_to_task_name,
)

from conftest import INDEX_HTML, files_payload


def _image(name, payload):
    return ProjectFile(name=name, type="image/png", content=base64.b64encode(payload).decode())


IMAGE_A = _image("a.png", b"first")
IMAGE_B = _image("b.png", b"second")


@pytest.fixture
def service(store, generator):
    return StudioService(store=store, generator=generator)


@pytest.fixture
def project(service):
    return asyncio.run(service.create_project("Bakery", "A bakery site", inspiration_image=IMAGE_A))


def test_prompt_to_task_name():
    assert prompt_to_task_name("Now, generate the 'About Us' page.") == "About Us"
    assert prompt_to_task_name("Make the header sticky") is None


def test_mark_homepage_task_only_marks_first_match():
    tasks = [PageTask(name="Homepage"), PageTask(name="Home Office"), PageTask(name="Contact")]

    marked = mark_homepage_task(tasks)

    assert [t.status for t in marked] == ["completed", "pending", "pending"]
    assert marked[0].file_name == "index.html"


def test_complete_task_is_case_insensitive():
    tasks = [PageTask(name="About Us")]
    assert complete_task(tasks, "about us", "about.html")[0].file_name == "about.html"


def test_create_project_runs_the_full_pipeline(project, store, fake_gemini):
    assert store.get(project.id) == project
    assert project.prd_document.name == "bakery-prd.md"
    assert [(t.name, t.status, t.file_name) for t in project.tasks] == [
        ("Homepage", "completed", "index.html"),
        ("About Us", "pending", None),
    ]
    assert [f.name for f in project.generated_code] == ["index.html"]
    assert has_navigation_bridge(project.generated_code[0].content)
    assert [m.role for m in project.chat_history] == ["user", "model"]
    assert project.inspiration_images == [IMAGE_A]
    assert project.theme == "Material Design"
    # brief, tasks, homepage
    assert len(fake_gemini.calls) == 3


def test_create_project_requires_name_and_prompt(service, fake_gemini):
    with pytest.raises(StudioValidationError):
        asyncio.run(service.create_project("  ", "A bakery site"))
    assert fake_gemini.calls == []


def test_create_project_stops_when_brief_fails(service, store, fake_gemini):
    fake_gemini.responder = lambda call: RuntimeError("down")

    with pytest.raises(BriefConsolidationError):
        asyncio.run(service.create_project("Bakery", "A bakery site"))

    assert store.list() == []


def test_create_project_with_no_tasks(service, fake_gemini):
    def responder(call):
        if call.generation_config.get("response_mime_type"):
            return "nonsense"
        if call.system_instruction is None:
            return "# PRD"
        return files_payload(("index.html", INDEX_HTML))
    fake_gemini.responder = responder

    project = asyncio.run(service.create_project("Bakery", "A bakery site"))

    assert project.tasks == []
    assert project.file_named("index.html") is not None


def test_generate_page_completes_task_with_new_file(service, project, store):
    updated = asyncio.run(service.generate_page(project, "About Us"))

    about = [t for t in updated.tasks if t.name == "About Us"][0]
    assert about.status == "completed"
    assert about.file_name == "about.html"
    assert [f.name for f in updated.generated_code] == ["index.html", "about.html"]
    assert updated.chat_history[-2].text == "Now, generate the 'About Us' page."
    assert updated.chat_history[-1].text == "Here is the updated prototype."
    assert store.get(project.id) == updated


def test_generate_page_unknown_task(service, project):
    with pytest.raises(StudioValidationError):
        asyncio.run(service.generate_page(project, "Careers"))


def test_generate_keeps_tasks_for_free_form_prompt(service, project):
    updated = asyncio.run(service.generate(project, "Make the header sticky"))
    assert updated.tasks == project.tasks


def test_generate_rejects_empty_prompt(service, project):
    with pytest.raises(StudioValidationError):
        asyncio.run(service.generate(project, "   "))


def test_generation_error_replaces_files_with_error_page(service, project, fake_gemini):
    fake_gemini.responder = lambda call: RuntimeError("overloaded")

    updated = asyncio.run(service.generate(project, "Add a footer"))

    assert [f.name for f in updated.generated_code] == ["error.html"]


def test_new_active_image_triggers_redesign(service, project, fake_gemini):
    before = len(fake_gemini.prototype_calls)

    updated = asyncio.run(service.add_inspiration_image(project, IMAGE_B, "about.html"))

    assert updated.inspiration_images == [IMAGE_A, IMAGE_B]
    assert updated.active_inspiration_image_index == 1
    assert len(fake_gemini.prototype_calls) == before + 1
    prompt = fake_gemini.prototype_calls[-1].contents[-1]["parts"][0]
    assert "full redesign" in prompt
    assert "'about' page" in prompt


def test_selecting_current_image_does_nothing(service, project, fake_gemini):
    before = len(fake_gemini.calls)
    assert asyncio.run(service.select_inspiration(project, 0)) == project
    assert len(fake_gemini.calls) == before


def test_same_image_content_saves_without_redesign(service, project, fake_gemini):
    copy = IMAGE_A.model_copy(update={"name": "copy.png"})
    before = len(fake_gemini.calls)

    updated = asyncio.run(service.update_inspirations(project, [IMAGE_A, copy], 1))

    assert updated.active_inspiration_image_index == 1
    assert len(fake_gemini.calls) == before


def test_out_of_range_image_index(service, project):
    with pytest.raises(StudioValidationError):
        asyncio.run(service.select_inspiration(project, 5))


def test_resolve_navigation(service, store, project):
    project = store.update(project.model_copy(update={"generated_code": [
        GeneratedFile(name="index.html", content=INDEX_HTML),
        GeneratedFile(name="about.html", content="<html></html>"),
    ]}))

    assert service.resolve_navigation(project, "./about.html") == "about.html"
    assert service.resolve_navigation(project, "about.html#team") == "about.html"
    assert service.resolve_navigation(project, "./missing.html") is None


def test_render_preview(service, store, project):
    project = store.update(project.model_copy(update={"generated_code": [
        GeneratedFile(name="index.html", content="<html><body>Hi</body></html>"),
        GeneratedFile(name="blank.html", content=""),
    ]}))

    assert asyncio.run(service.render_preview(project, "index.html")) == "<html><body>Hi</body></html>"
    assert asyncio.run(service.render_preview(project, "blank.html")) == ""
    assert asyncio.run(service.render_preview(project, "missing.html")) is None


def test_select_theme(service, project):
    assert service.select_theme(project, "Material Design").theme == "Material Design"
    with pytest.raises(StudioValidationError):
        service.select_theme(project, "Comic Sans")


def test_generate_page_completes_task_with_apostrophe(service, store, project, fake_gemini):
    project = store.update(project.model_copy(update={
        "tasks": project.tasks + [PageTask(name="Men's Wear")],
    }))
    fake_gemini.responder = lambda call: files_payload(
        ("index.html", INDEX_HTML), ("mens-wear.html", "<html><body>Men</body></html>")
    )

    updated = asyncio.run(service.generate_page(project, "Men's Wear"))

    task = [t for t in updated.tasks if t.name == "Men's Wear"][0]
    assert task.status == "completed"
    assert task.file_name == "mens-wear.html"
