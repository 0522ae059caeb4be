"""Static HTML server with the Markdown middleware, used by ``web-markdown serve``."""

import logging
import mimetypes
from pathlib import Path
from typing import Optional

from aiohttp import web

from .adapters.aiohttp_server import markdown_middleware
from .models.config import TransformPolicy
from .models.events import TransformStats

logger = logging.getLogger(__name__)

STATS_KEY = web.AppKey("web_markdown_stats", TransformStats)
ROOT_KEY = web.AppKey("web_markdown_root", Path)
INDEX_FILE = "index.html"


def resolve_static_path(root: Path, request_path: str) -> Optional[Path]:
    """
    Map a request path onto a file under ``root``.

    Directories resolve to their index.html. Paths escaping the root
    resolve to None.
    """
    relative = request_path.lstrip("/")
    candidate = (root / relative).resolve()

    try:
        candidate.relative_to(root)
    except ValueError:
        return None

    if candidate.is_dir():
        candidate = candidate / INDEX_FILE
    if not candidate.is_file():
        return None
    return candidate


async def serve_file(request: web.Request) -> web.Response:
    path = resolve_static_path(request.app[ROOT_KEY], request.path)
    if path is None:
        raise web.HTTPNotFound(text=f"Not found: {request.path}")

    content_type, _ = mimetypes.guess_type(path.name)
    return web.Response(
        body=path.read_bytes(),
        content_type=content_type or "application/octet-stream",
        charset="utf-8" if content_type and content_type.startswith("text/") else None,
    )


def create_app(root: Path, policy: TransformPolicy, stats: Optional[TransformStats] = None) -> web.Application:
    """
    Build an aiohttp application serving ``root`` behind the middleware.

    Args:
        root: Directory holding the HTML files
        policy: Transform policy (its observation callback is kept, and
            observations are also recorded in ``stats``)
        stats: Stats collector (a new one if None)

    Returns:
        The configured application
    """
    stats = stats or TransformStats()
    forward = policy.on_observation

    def observe(observation):
        stats.record(observation)
        logger.info(f"observation: {observation.to_dict()}")
        if forward is not None:
            forward(observation)

    app_policy = policy.model_copy(update={"on_observation": observe})

    app = web.Application(middlewares=[markdown_middleware(app_policy)])
    app[ROOT_KEY] = root.resolve()
    app[STATS_KEY] = stats
    app.router.add_get("/{tail:.*}", serve_file)
    return app
