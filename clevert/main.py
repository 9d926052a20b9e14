from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI  # type: ignore[import-not-found]

from .logging_config import setup_logging
from .routers import extensions, runners


@asynccontextmanager
async def lifespan(_app: FastAPI):
    setup_logging()
    from .services.runner_registry import runner_registry

    runner_registry.start()
    try:
        yield
    finally:
        runner_registry.shutdown()
        for _runner_id, runner in runner_registry.items():
            runner.stop()

app = FastAPI(
    title="Clevert",
    description="Apply extension actions to batches of files.",
    version="0.1.0",
    lifespan=lifespan
)

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(runners.router)
v1_router.include_router(extensions.router)
app.include_router(v1_router)

@app.get("/")
async def root():
    return {"message": "Clevert is running"}
