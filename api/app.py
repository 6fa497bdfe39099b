from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.router import router, shutdown_service
from core.logging_setup import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await shutdown_service()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Contribution Engine API",
        description="Multi-chain contribution ingestion and claim verification.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.include_router(router)

    @app.get("/")
    def root():
        return {"status": "ok", "message": "Contribution Engine API is running"}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    setup_logging()
    uvicorn.run(app, host="0.0.0.0", port=8000)
