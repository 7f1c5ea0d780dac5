"""FastAPI entry point serving the Image Weaver page and its JSON API."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Form, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, RedirectResponse

from .aiservices.geminiimagegenerationclient import GeminiImageGenerationClient
from .aiservices.imagegenerationclient import GenerationError, ImageGenerationClient
from .config import Settings, get_settings
from .render import image_data_uri, render_page
from .schemas import AspectRatio, GenerationRequest, ImageResponse, ViewStateResponse
from .view import UNKNOWN_ERROR_MESSAGE, GenerationView, ViewRegistry, get_generation_view, validate_prompt

logger = logging.getLogger(__name__)

SESSION_COOKIE = "imageweaver_session"


def get_image_client(settings: Settings = Depends(get_settings)) -> ImageGenerationClient:
    return GeminiImageGenerationClient(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Refuse to serve anything without a credential.
    settings_factory = app.dependency_overrides.get(get_settings, get_settings)
    settings = settings_factory()
    logger.info("Image Weaver ready (model %s)", settings.image_model_id)
    yield


app = FastAPI(title="Image Weaver", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def attach_session(request: Request, call_next):
    session_id = request.cookies.get(SESSION_COOKIE)
    is_new = not session_id
    if is_new:
        session_id = ViewRegistry.new_session_id()
    request.state.session_id = session_id

    response = await call_next(request)
    if is_new:
        response.set_cookie(SESSION_COOKIE, session_id, httponly=True, samesite="lax")
    return response


@app.get("/health", summary="Health Check Endpoint")
async def healthcheck(settings: Settings = Depends(get_settings)):
    return {
        "status": "ok",
        "imageModel": settings.image_model_id,
    }


# ----------------------------------------------------------------------
# Page
# ----------------------------------------------------------------------
@app.get("/", response_class=HTMLResponse, summary="Render the generation page")
async def index(view: GenerationView = Depends(get_generation_view)):
    return HTMLResponse(render_page(view.state))


@app.post("/prompt", summary="Update the prompt text")
async def update_prompt(
    prompt: str = Form(""),
    view: GenerationView = Depends(get_generation_view),
):
    view.set_prompt(prompt)
    return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)


@app.post("/aspect-ratio", summary="Select an aspect ratio")
async def select_aspect_ratio(
    aspect_ratio: AspectRatio = Form(...),
    prompt: str | None = Form(None),
    view: GenerationView = Depends(get_generation_view),
):
    if prompt is not None:
        view.set_prompt(prompt)
    view.set_aspect_ratio(aspect_ratio)
    return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)


@app.post("/generate", summary="Generate an image from the form")
async def generate_from_form(
    prompt: str = Form(""),
    aspect_ratio: AspectRatio | None = Form(None),
    view: GenerationView = Depends(get_generation_view),
):
    view.set_prompt(prompt)
    if aspect_ratio is not None:
        view.set_aspect_ratio(aspect_ratio)

    # The rendered button is disabled while loading; a post that slips through
    # only keeps its edits.
    if view.state.is_loading:
        logger.info("Ignoring generate request while another is in flight")
    else:
        view.start_submit()
    return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)


# ----------------------------------------------------------------------
# JSON API
# ----------------------------------------------------------------------
@app.get("/api/state", response_model=ViewStateResponse, summary="Current view state")
async def view_state(view: GenerationView = Depends(get_generation_view)):
    return ViewStateResponse(**view.state.as_dict())


@app.post(
    "/api/generate",
    response_model=ImageResponse,
    summary="Generate a single image from a prompt",
)
async def generate_image(
    payload: GenerationRequest,
    client: ImageGenerationClient = Depends(get_image_client),
):
    message = validate_prompt(payload.prompt)
    if message is not None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=message,
        )

    try:
        image = await client.generate(payload.prompt, payload.aspect_ratio)
    except GenerationError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc
    except Exception as exc:
        logger.exception("Unexpected failure while generating image")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=UNKNOWN_ERROR_MESSAGE,
        ) from exc

    return ImageResponse(image=image, data_uri=image_data_uri(image))


__all__ = ["app"]


def run() -> None:  # pragma: no cover - convenience entry point
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run("imageweaver.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":  # pragma: no cover - convenience entry point
    run()
