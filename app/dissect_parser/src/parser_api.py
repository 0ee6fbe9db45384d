import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, HTTPException, UploadFile
from pydantic import BaseModel

from ..schemas.schemas import MatchHeader
from .core import DissectError, configure_logging
from .parse_service import decode_dissect_file
from . import parse_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run startup/shutdown hooks for the FastAPI app."""
    configure_logging()
    logger.info("Starting Dissect Parser API...")
    yield
    logger.info("Shutting down Dissect Parser API...")


app = FastAPI(title="Dissect Parser API", lifespan=lifespan)


class DissectParseRequest(BaseModel):
    dissect_path: str


def _to_http_exception(exc: Exception) -> HTTPException:
    """Normalize internal exceptions to an HTTPException."""
    if isinstance(exc, FileNotFoundError):
        return HTTPException(status_code=404, detail=f"File not found: {exc.filename}")
    if isinstance(exc, (DissectError, ValueError)):
        return HTTPException(status_code=400, detail=str(exc))
    return HTTPException(status_code=500, detail="Failed to decode dissect file")


@app.post("/parse-dissect/", response_model=MatchHeader)
def parse_dissect_endpoint(request: DissectParseRequest):
    """Decode a dissect file on disk and return its match header."""
    dissect_path = request.dissect_path
    logger.info("Received request to decode: %s", dissect_path)
    try:
        header = decode_dissect_file(dissect_path)
    except Exception as exc:
        raise _to_http_exception(exc) from exc
    logger.info("Completed decoding: %s", dissect_path)
    return header


@app.post("/parse-dissect/upload", response_model=MatchHeader)
async def parse_dissect_upload(file: UploadFile = File(...)):
    """Accept a dissect file upload and return its match header."""
    content = await file.read()
    try:
        return await asyncio.to_thread(parse_service.decode_dissect_bytes, content)
    except Exception as exc:
        raise _to_http_exception(exc) from exc


@app.get("/health")
def health_check():
    """Simple health endpoint for readiness checks."""
    return {"status": "ok"}
