import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .routes import notes, stats, users

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="NoteShare API",
    description="Upload, browse, preview and download course notes",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(notes.router)
app.include_router(users.router)
app.include_router(stats.router)


@app.get("/")
def read_root():
    return {"status": "active", "service": "NoteShare API"}


if __name__ == "__main__":
    import uvicorn

    logger.info("Starting NoteShare API on port 8000")
    uvicorn.run(app, host="0.0.0.0", port=8000)
