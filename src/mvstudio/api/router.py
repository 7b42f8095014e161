"""Master API router mounted at /api/v1."""

from fastapi import APIRouter

from mvstudio.api.routes import (
    connections,
    health,
    jobs,
    music,
    projects,
    publications,
    videos,
)

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(projects.router)
api_router.include_router(jobs.router)
api_router.include_router(music.router)
api_router.include_router(videos.router)
api_router.include_router(publications.router)
api_router.include_router(connections.router)
