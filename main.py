"""
FastAPI host application wired with the request protection layer.
Exposes protection stats and an administrative unblock route.
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException

from request_shield import ProtectionState, install_protection, load_settings


def create_app(state: Optional[ProtectionState] = None) -> FastAPI:
    protection = state or ProtectionState(settings=load_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        protection.cleanup.start()
        yield
        protection.cleanup.stop()

    app = FastAPI(
        title="Request Shield",
        description="Brute-force, attack-pattern and enumeration protection",
        version="1.0.0",
        lifespan=lifespan,
    )
    install_protection(app, protection)

    @app.get("/")
    async def root():
        return {"status": "ok"}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    @app.get("/protection/stats")
    async def protection_stats():
        return protection.snapshot().to_dict()

    @app.delete("/protection/blocks/{source}")
    async def clear_block(source: str):
        if not protection.unblock(source):
            raise HTTPException(status_code=404, detail=f"{source} is not blocked")
        return {"success": True, "source": source}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
