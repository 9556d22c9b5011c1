"""FastAPI web interface for doc2audiobook."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, Header, Request, UploadFile
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field

from doc2audiobook import __version__
from doc2audiobook.config import Settings
from doc2audiobook.errors import AudiobookError, Unauthorized
from doc2audiobook.metadata import metadata_filename
from doc2audiobook.service import AudiobookService

logger = logging.getLogger(__name__)


# --- Pydantic models ---

class ConvertRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    document_path: str = Field(alias="documentPath")
    voice_id: str = Field(alias="voiceId")
    filename: Optional[str] = None
    speed: float = 1.0


class MetadataRequest(BaseModel):
    title: Optional[str] = None
    author: Optional[str] = None
    narrator: Optional[str] = None
    language: Optional[str] = None
    publisher: Optional[str] = None
    isbn: Optional[str] = None


class PreviewRequest(BaseModel):
    voice: str


def _attachment(filename: str) -> dict:
    safe = filename.encode("ascii", "ignore").decode().replace('"', "")
    return {"Content-Disposition": f'attachment; filename="{safe}"'}


# --- App factory ---

def create_app(
    settings: Optional[Settings] = None,
    service: Optional[AudiobookService] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    service = service or AudiobookService.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        service.worker.start()
        logger.info("doc2audiobook %s started (engine: %s)", __version__, service.engine.name)
        yield
        service.close(wait=False)
        logger.info("doc2audiobook shutting down")

    app = FastAPI(title="doc2audiobook", version=__version__, lifespan=lifespan)
    app.state.service = service

    @app.exception_handler(AudiobookError)
    async def audiobook_error_handler(request: Request, exc: AudiobookError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse({"error": str(exc)}, status_code=exc.status_code)

    def current_user(
        x_user_id: Optional[str] = Header(None),
        x_api_key: Optional[str] = Header(None),
    ) -> str:
        """Resolve the caller's identity from request headers."""
        if settings.api_password and x_api_key != settings.api_password:
            raise Unauthorized("Invalid API key")
        if not x_user_id:
            raise Unauthorized("Missing X-User-Id header")
        return x_user_id

    # --- Routes ---

    @app.get("/api/health")
    def health():
        return {"status": "healthy", "version": __version__, "engine": service.engine.name}

    @app.get("/api/voices")
    def list_voices(user_id: str = Depends(current_user)):
        return {"voices": [v.to_dict() for v in service.list_voices(user_id)]}

    @app.post("/api/voices/clone", status_code=201)
    async def clone_voice(
        file: UploadFile = File(...),
        name: str = Form(""),
        user_id: str = Depends(current_user),
    ):
        sample = await file.read()
        return service.start_voice_clone(
            user_id, sample, name=name, filename=file.filename or "sample.webm"
        )

    @app.post("/api/voices/preview")
    def preview_voice(req: PreviewRequest, user_id: str = Depends(current_user)):
        audio = service.preview_voice(user_id, req.voice)
        return Response(content=audio, media_type="audio/mpeg")

    @app.post("/api/documents", status_code=201)
    async def upload_document(
        file: UploadFile = File(...),
        user_id: str = Depends(current_user),
    ):
        content = await file.read()
        path = service.upload_document(user_id, file.filename or "document.txt", content)
        return {"documentPath": path}

    @app.post("/api/conversions", status_code=202)
    def start_conversion(req: ConvertRequest, user_id: str = Depends(current_user)):
        return service.start_conversion(
            user_id,
            req.document_path,
            req.voice_id,
            filename=req.filename,
            speed=req.speed,
        )

    @app.get("/api/conversions")
    def list_conversions(user_id: str = Depends(current_user)):
        return {"conversions": [j.to_dict() for j in service.list_jobs(user_id)]}

    @app.get("/api/conversions/{job_id}")
    def get_conversion(job_id: str, user_id: str = Depends(current_user)):
        return service.get_job_status(user_id, job_id).to_dict()

    @app.get("/api/conversions/{job_id}/audio")
    def download_audio(job_id: str, user_id: str = Depends(current_user)):
        audio = service.get_finished_audio(user_id, job_id)
        return Response(
            content=audio,
            media_type="audio/mpeg",
            headers=_attachment(f"audiobook-{job_id}.mp3"),
        )

    @app.post("/api/conversions/{job_id}/metadata")
    def export_metadata(
        job_id: str,
        req: Optional[MetadataRequest] = None,
        user_id: str = Depends(current_user),
    ):
        overrides = req.model_dump() if req else {}
        document = service.export_metadata(user_id, job_id, overrides)
        return JSONResponse(
            document,
            headers=_attachment(metadata_filename(overrides.get("title"))),
        )

    return app


# --- CLI entry point ---

def main():
    """Run the doc2audiobook web server."""
    import argparse
    import uvicorn

    settings = Settings.from_env()

    parser = argparse.ArgumentParser(description="doc2audiobook web interface")
    parser.add_argument("--host", default=settings.host, help=f"Host (default: {settings.host})")
    parser.add_argument("--port", type=int, default=settings.port, help=f"Port (default: {settings.port})")
    parser.add_argument("--storage-dir", default=settings.storage_dir, help="Directory for uploads and output")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    settings.storage_dir = args.storage_dir
    app = create_app(settings)
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
