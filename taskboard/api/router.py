from fastapi import APIRouter

from ..routers import auth as auth_router
from ..routers import tasks as tasks_router

api_router = APIRouter()

api_router.include_router(auth_router.router)
api_router.include_router(tasks_router.router)


@api_router.get("/", tags=["meta"])  # lightweight meta endpoint
def api_info():
    return {
        "name": "Taskboard API",
        "docs": "/docs",
        "auth": {
            "register": "/auth/register",
            "login": "/auth/login",
            "profile": "/auth/profile",
            "logout": "/auth/logout",
        },
        "tasks": "/tasks",
        "summary": "/tasks/summary",
    }
