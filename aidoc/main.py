import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.formparsers import MultiPartParser
from starlette.responses import Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from aidoc.api.routes import router as api_router
from aidoc.config import get_settings

# Keep uploads under the size limit in memory instead of a temp file on disk.
# Process-wide and read once at import: must stay above max_upload_bytes, and
# per-request Settings overrides do not change it.
MultiPartParser.spool_max_size = get_settings().max_upload_bytes + 1

app = FastAPI(
    title="AiDoc Key-Date Extraction",
    version="0.1.0",
    description="Extracts deadlines, start/end, signature and payment dates from documents.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
@app.get("/api/health", include_in_schema=False)
def health():
    return {"status": "ok"}


@app.get("/metrics")
def metrics():
    data = generate_latest()  # default registry
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)


app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "3000")))
