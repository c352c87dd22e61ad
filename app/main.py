# app/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.deps import shutdown_engine
from app.routers import auth, biometrics, recommendations, users

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(message)s",
)
log = logging.getLogger("vitalis.api")


def create_app() -> FastAPI:
    app = FastAPI(title="Vitalis API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/", summary="Root")
    def root():
        return {"message": "Vitalis API is running"}

    @app.get("/health", tags=["health"], summary="Health")
    def health():
        return {"status": "ok"}

    app.include_router(auth.router, prefix="/auth", tags=["auth"])
    app.include_router(users.router, prefix="/users", tags=["users"])
    app.include_router(biometrics.router, prefix="/biometrics", tags=["biometrics"])
    app.include_router(recommendations.router, prefix="/v1/recommendations", tags=["recommendations"])

    @app.on_event("startup")
    async def _dump_routes():
        for r in app.routes:
            methods = ",".join(sorted(getattr(r, "methods", []) or []))
            log.debug("route %-9s %s", methods, getattr(r, "path", ""))

    @app.on_event("shutdown")
    def _stop_engine():
        shutdown_engine()

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    log.info("Starting Vitalis API on http://%s:%s", settings.API_HOST, settings.API_PORT)
    uvicorn.run("app.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=True)
