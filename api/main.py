"""
FastAPI server for the lyricsearch API.

This server provides endpoints for:
1. Adding batches of songs
2. Scheduling process / unprocess / clear job chains
3. Reporting processing statistics
4. Searching verses by semantic similarity
"""

from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from typing import List
import logging

from lyricsearch.config.settings import JOB_CONFIG, SEARCH_CONFIG
from lyricsearch.core.interfaces.storage import Song
from lyricsearch.jobs.songs import CLEAR_JOB, PROCESS_JOB, UNPROCESS_JOB, SongJobs, build_jobs
from lyricsearch.search.semantic import SemanticSearch

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the jobs and run the scheduler worker for the app's lifetime."""
    with build_jobs() as jobs:
        app.state.jobs = jobs
        # A durable scheduler is served by `python -m lyricsearch.jobs worker` instead
        if hasattr(jobs.scheduler, "start"):
            jobs.scheduler.start()
        try:
            yield
        finally:
            if hasattr(jobs.scheduler, "stop"):
                jobs.scheduler.stop()


# Create FastAPI app
app = FastAPI(
    title="Lyricsearch API",
    description="API for verse extraction, embedding and semantic search over song lyrics",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_jobs(request: Request) -> SongJobs:
    return request.app.state.jobs


# Pydantic models for request/response
class SongIn(BaseModel):
    genre: str
    artist: str
    title: str
    year: int
    lyrics: str
    features: str = ""
    geniusViews: int = Field(ge=0)
    geniusId: int


class SongBatchRequest(BaseModel):
    batch: List[SongIn]


class SongBatchResponse(BaseModel):
    received: int
    inserted: int


class ProcessRequest(BaseModel):
    limit: int = Field(default=JOB_CONFIG["limit"], gt=0)
    minViews: int = Field(default=JOB_CONFIG["min_views"], ge=0)
    recursive: bool = True


class UnprocessRequest(BaseModel):
    limit: int = Field(default=JOB_CONFIG["limit"], gt=0)
    recursive: bool = True


class JobResponse(BaseModel):
    job: str
    status: str
    message: str


class StatsResponse(BaseModel):
    songs: int
    processed: int
    unprocessed: int
    verses: int


class SearchRequest(BaseModel):
    query: str
    limit: int = Field(default=SEARCH_CONFIG["top_k"], gt=0)


class SearchResult(BaseModel):
    title: str
    artist: str
    verse: str
    score: float


class SearchResponse(BaseModel):
    results: List[SearchResult]
    total: int


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": "Lyricsearch API is running", "version": "1.0.0"}


@app.post("/api/songs/batch", response_model=SongBatchResponse)
def add_song_batch(request: SongBatchRequest, jobs: SongJobs = Depends(get_jobs)):
    """Add songs whose geniusId is not stored yet; duplicates are skipped."""
    songs = [
        Song(
            genius_id=s.geniusId,
            genre=s.genre,
            artist=s.artist,
            title=s.title,
            year=s.year,
            lyrics=s.lyrics,
            features=s.features,
            genius_views=s.geniusViews,
        )
        for s in request.batch
    ]
    try:
        inserted = jobs.add_batch(songs)
    except Exception as e:
        logger.error(f"Add batch error: {e}")
        raise HTTPException(status_code=500, detail=f"Add batch failed: {str(e)}")
    return SongBatchResponse(received=len(songs), inserted=inserted)


def schedule(jobs: SongJobs, job: str, args: dict) -> JobResponse:
    try:
        jobs.scheduler.run_after(0, job, args)
    except Exception as e:
        logger.error(f"Scheduling {job} failed: {e}")
        raise HTTPException(status_code=500, detail=f"Scheduling failed: {str(e)}")
    logger.info(f"Scheduled {job} with {args}")
    return JobResponse(job=job, status="scheduled", message=f"{job} scheduled")


@app.post("/api/songs/process", response_model=JobResponse)
def process_songs(request: ProcessRequest, jobs: SongJobs = Depends(get_jobs)):
    """
    Schedule verse extraction for unprocessed songs.

    With ``recursive`` the chain keeps rescheduling itself until no
    unprocessed song with at least ``minViews`` views is left.
    """
    return schedule(
        jobs,
        PROCESS_JOB,
        {"limit": request.limit, "min_views": request.minViews, "recursive": request.recursive},
    )


@app.post("/api/songs/unprocess", response_model=JobResponse)
def unprocess_songs(request: UnprocessRequest, jobs: SongJobs = Depends(get_jobs)):
    """Schedule deletion of verses and reset of processed flags."""
    return schedule(jobs, UNPROCESS_JOB, {"limit": request.limit, "recursive": request.recursive})


@app.post("/api/songs/clear", response_model=JobResponse)
def clear_songs(jobs: SongJobs = Depends(get_jobs)):
    """Schedule deletion of every song and verse."""
    return schedule(jobs, CLEAR_JOB, {})


@app.get("/api/stats", response_model=StatsResponse)
def get_stats(jobs: SongJobs = Depends(get_jobs)):
    storage = jobs.storage
    return StatsResponse(
        songs=storage.count_songs(),
        processed=storage.count_songs(processed=True),
        unprocessed=storage.count_songs(processed=False),
        verses=storage.count_verses(),
    )


@app.post("/api/search", response_model=SearchResponse)
def search_verses(request: SearchRequest, jobs: SongJobs = Depends(get_jobs)):
    """
    Search verses using semantic similarity.

    This endpoint:
    1. Encodes the search query
    2. Performs vector similarity search
    3. Returns ranked verses
    """
    try:
        search = SemanticSearch(storage=jobs.storage, encoder=jobs.encoder)
        results = search.search(request.query, top_k=request.limit)
    except Exception as e:
        logger.error(f"Search error: {e}")
        raise HTTPException(status_code=500, detail=f"Search failed: {str(e)}")

    search_results = [
        SearchResult(title=title, artist=artist, verse=verse, score=score)
        for title, artist, verse, score in results
    ]
    return SearchResponse(results=search_results, total=len(search_results))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
