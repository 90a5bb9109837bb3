import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv
load_dotenv(Path.cwd() / ".env")

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.commands import router as commands_router
from .api.google_auth import GoogleAuthFlow, router as google_auth_router
from .chat.command_dispatcher import CommandDispatcher
from .config import Settings
from .tools.errors import VoiceCommandError

logger = logging.getLogger(__name__)


def create_app(
  settings: Settings | None = None,
  dispatcher: CommandDispatcher | None = None,
  auth_flow: GoogleAuthFlow | None = None,
) -> FastAPI:
  settings = settings or Settings.from_env()

  app = FastAPI(title="Voice Command Assistant")
  app.state.settings = settings
  app.state.dispatcher = dispatcher or CommandDispatcher.from_settings(settings)
  app.state.auth_flow = auth_flow or GoogleAuthFlow.from_settings(settings)

  app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_methods=["*"],
    allow_headers=["*"],
  )

  app.include_router(commands_router)
  app.include_router(google_auth_router)

  @app.exception_handler(VoiceCommandError)
  async def voice_command_error_handler(request: Request, exc: VoiceCommandError):
    if exc.status_code < 500:
      logger.info("Rejected %s: %s", request.url.path, exc.message)
      return JSONResponse(status_code=exc.status_code, content={"error": exc.message})
    logger.error("Error processing %s: %s", request.url.path, exc.message, exc_info=exc)
    return JSONResponse(
      status_code=exc.status_code,
      content={"error": exc.error, "message": exc.message},
    )

  @app.exception_handler(RequestValidationError)
  async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = errors[0].get("msg", "Invalid request body") if errors else "Invalid request body"
    return JSONResponse(status_code=400, content={"error": detail})

  @app.exception_handler(Exception)
  async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error processing %s: %s", request.url.path, exc)
    return JSONResponse(
      status_code=500,
      content={"error": "Failed to process command", "message": str(exc)},
    )

  @app.get("/health")
  async def health():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

  return app


def run() -> None:
  logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
  )
  settings = Settings.from_env()
  app = create_app(settings)
  logger.info("Health check: http://localhost:%s/health", settings.port)
  logger.info("Google Auth: http://localhost:%s/auth/google", settings.port)
  uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
  run()
