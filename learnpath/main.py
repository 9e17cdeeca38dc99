## Main application entry point
import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from learnpath.auth.deps import NotAuthenticated
from learnpath.implement.routes import router as implement_router
from learnpath.learning_paths.routes import router as learning_paths_router
from learnpath.nodes.routes import router as nodes_router
from learnpath.quiz.routes import router as quiz_router
from learnpath.responses import fail
from learnpath.settings import settings
from learnpath.workflows.routes import router as workflows_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="learnpath")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@app.exception_handler(NotAuthenticated)
async def not_authenticated_handler(request: Request, exc: NotAuthenticated):
    return fail("User ID required", status_code=401)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info("Rejected request to %s: %s", request.url.path, exc.errors())
    return fail("Invalid request", status_code=400)


app.include_router(learning_paths_router, prefix="/api")
app.include_router(nodes_router, prefix="/api")
app.include_router(workflows_router, prefix="/api")
app.include_router(implement_router, prefix="/api")
app.include_router(quiz_router, prefix="/api")
