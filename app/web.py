from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse, HTMLResponse, Response
from fastapi.templating import Jinja2Templates

from settings import get_settings

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

INDEX_FILENAME = "index.html"


def get_static_dir() -> Path:
    return Path(get_settings().static_dir).resolve()


router = APIRouter(include_in_schema=False)


@router.get("/", name="dashboard_index", response_class=HTMLResponse)
async def dashboard_index(
    request: Request,
    static_dir: Path = Depends(get_static_dir),
) -> Response:
    index_path = static_dir / INDEX_FILENAME
    if index_path.is_file():
        logger.info("Serving index.html")
        return FileResponse(index_path, media_type="text/html")

    logger.info("index.html not rendered yet, serving placeholder")
    return templates.TemplateResponse(
        request,
        "placeholder.html",
        {"static_dir": str(static_dir), "index_filename": INDEX_FILENAME},
    )
