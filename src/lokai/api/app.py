"""
Core API backend for Lokai.

It exposes the following endpoints:
- **GET /health**         - liveness probe for health checks.
- **GET /models**         - installed models and the active one.
- **PUT /models/active**  - switch the active model: {"name": "..."}
- **POST /agent**         - run the agent loop: {"message": "...", "history": [...]}
- **POST /context**       - estimate context-window usage of a message list.
"""

import logging
from functools import lru_cache

from fastapi import (
    Depends,
    FastAPI,
    HTTPException,
)

from lokai.agent.chat_transport import ChatTransportError
from lokai.agent.orchestrator import AgentOrchestrator
from lokai.api.models import (
    ActiveModelResponse,
    AgentRequest,
    ContextRequest,
    ModelSelection,
    ModelsResponse,
)
from lokai.common import (
    AnsiColors,
    colored_print,
)
from lokai.config import settings
from lokai.core.schema import AgentResponse
from lokai.core.tokens import ContextInfo

logger = logging.getLogger(__name__)

app = FastAPI(title="Lokai API", version="0.1.0", description="Lokai local agent orchestrator API")


@lru_cache(maxsize=1)
def get_orchestrator() -> AgentOrchestrator:
    """Shared orchestrator instance (overridden in tests)."""
    return AgentOrchestrator.from_settings()


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health", summary="Health check")
async def health() -> dict[str, str]:
    """Return a simple liveness payload."""
    return {"status": "ok"}


@app.get("/models", response_model=ModelsResponse, summary="List models")
async def list_models(agent: AgentOrchestrator = Depends(get_orchestrator)) -> ModelsResponse:
    """List installed models; empty if the inference endpoint is unreachable."""
    models = await agent.available_models()
    return ModelsResponse(models=models, active=agent.model)


@app.put("/models/active", response_model=ActiveModelResponse, summary="Select a model")
async def select_model(
    req: ModelSelection, agent: AgentOrchestrator = Depends(get_orchestrator)
) -> ActiveModelResponse:
    """Switch the model used by subsequent agent calls."""
    try:
        agent.set_model(req.name)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ActiveModelResponse(active=agent.model)


@app.post("/agent", response_model=AgentResponse, summary="Process a message")
async def agent_endpoint(
    req: AgentRequest, agent: AgentOrchestrator = Depends(get_orchestrator)
) -> AgentResponse:
    """Run the agent loop for one user message."""
    logger.debug("Agent request: %d history turns, agent_mode=%s", len(req.history), req.agent_mode)
    try:
        return await agent.chat(req.message, req.history, agent_mode=req.agent_mode)
    except ChatTransportError as exc:
        logger.warning("Agent call failed: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc


@app.post("/context", response_model=ContextInfo, summary="Estimate context usage")
async def context_endpoint(req: ContextRequest) -> ContextInfo:
    """Return a heuristic context-window usage snapshot."""
    window = req.context_window if req.context_window is not None else settings.CONTEXT_WINDOW
    return ContextInfo.estimate(req.messages, req.completion, window)


# ---------------------------------------------------------------------------
# Public helper to launch the API (imported by main.py)
# ---------------------------------------------------------------------------
def run_api(
    host: str = "0.0.0.0", port: int = 8000, reload: bool = False, log_level: str | None = None
) -> None:
    """Start a uvicorn server hosting *app*.

    Parameters
    ----------
    host, port:
        Bind address for the HTTP server.
    reload:
        If *True*, enable auto-reload (useful in development).
    log_level:
        Logging level to use (default from settings if not provided).
    """

    # Lazy import - keeps uvicorn an optional dependency at pkg‑import time
    import uvicorn  # pylint: disable=import-outside-toplevel

    if log_level is None:  # Use the default from settings if not provided
        log_level = settings.LOG_LEVEL

    logger.info(
        "Starting Lokai API at %s:%d (reload=%s, log_level=%s)", host, port, reload, log_level
    )
    logger.debug("API settings: %s", settings.model_dump())

    colored_print(f"🔮 Lokai API is running at http://localhost:{port}.", AnsiColors.GREEN)
    colored_print(f"Inference endpoint: {settings.OLLAMA_BASE_URL}", AnsiColors.BLUE)
    uvicorn.run(
        "lokai.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


# ---------------------------------------------------------------------------
# `python -m lokai.api.app` helper
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    run_api(reload=True)
