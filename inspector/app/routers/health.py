from fastapi import APIRouter


def create_health_router(db_backend: str, provider_runtime) -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    def health() -> dict[str, object]:
        return {
            "status": "ok",
            "db_backend": db_backend,
            "connected_providers": len(provider_runtime.connections()),
        }

    return router
