from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from .config import Config
from .errors import MissingFileError, TransformerError
from .intake import IntakeValidator, UploadedAsset, transient
from .preprocess import prepare_image
from .providers import Provider, TransformationResult, build_provider

logger = logging.getLogger("zombie_transformer.app")

SERVICE_NAME = "zombie-transformer"
DOWNLOAD_NAME = "zombie-me.png"

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))


class HealthStatus(BaseModel):
    status: str
    service: str


def get_provider(request: Request) -> Provider:
    return request.app.state.provider


def get_intake(request: Request) -> IntakeValidator:
    return request.app.state.intake


def run_transformation(provider: Provider, asset: UploadedAsset) -> TransformationResult:
    """Preprocess the stored upload when the provider needs fixed sizes, then call it."""
    if provider.requires_resize:
        prepared = prepare_image(asset.path)
        request = provider.build_request(prepared.data, prepared.media_type)
    else:
        request = provider.build_request(asset.read_bytes(), asset.content_type)
    return provider.transform(request)


def render_error(request: Request, message: str, status_code: int = 500) -> HTMLResponse:
    config: Config = request.app.state.config
    return templates.TemplateResponse(
        request,
        "error.html",
        {"message": message, "max_mb": config.max_upload_bytes // (1024 * 1024)},
        status_code=status_code,
    )


def create_app(config: Optional[Config] = None, provider: Optional[Provider] = None) -> FastAPI:
    config = config or Config.from_env()
    config.upload_dir.mkdir(parents=True, exist_ok=True)

    app = FastAPI(title="Zombie Face Transformer", version="0.1.0")
    app.state.config = config
    app.state.provider = provider or build_provider(config)
    app.state.intake = IntakeValidator(config.upload_dir, config.max_upload_bytes)

    @app.get("/", response_class=HTMLResponse)
    async def index(request: Request) -> HTMLResponse:
        return templates.TemplateResponse(request, "index.html", {})

    @app.post("/generate", response_class=HTMLResponse)
    async def generate(
        request: Request,
        provider: Provider = Depends(get_provider),
        intake: IntakeValidator = Depends(get_intake),
    ) -> HTMLResponse:
        try:
            # a plain text "image" field is treated the same as no file
            form = await request.form()
            image = form.get("image")
            if not isinstance(image, UploadFile) or not image.filename:
                raise MissingFileError()
            asset = await intake.accept(image)
            with transient(asset):
                logger.info("Processing %s with %s", asset.name, provider.name)
                result = await run_in_threadpool(run_transformation, provider, asset)
        except TransformerError as e:
            logger.error("Transformation failed (%s): %s", e.kind.value, e.message)
            return render_error(request, e.message, e.status_code)
        except Exception as e:
            logger.exception("Unexpected error while generating")
            return render_error(request, str(e))

        logger.info("Transformation complete for %s", asset.name)
        return templates.TemplateResponse(
            request,
            "result.html",
            {"image_src": result.src, "download_name": DOWNLOAD_NAME},
        )

    @app.get("/health", response_model=HealthStatus)
    async def health() -> HealthStatus:
        return HealthStatus(status="ok", service=SERVICE_NAME)

    return app
