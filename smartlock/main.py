# -*- coding: utf-8 -*-
from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request

from smartlock.config import AppConfig, load_config
from smartlock.generation import GenerationSession
from smartlock.lock_controller import LockController
from smartlock.lock_machine import LockPolicy
from smartlock.scheduler import AsyncioScheduler
from smartlock.utils import logger, set_log_level
from smartlock.vhdl_client import CodeGenerator, VHDLGenerator


def policy_from_config(cfg: AppConfig) -> LockPolicy:
    lc = cfg.lock
    return LockPolicy(
        secret_code=lc.secret_code,
        max_attempts=lc.max_attempts,
        lockout_seconds=lc.lockout_seconds,
        auto_clear_seconds=lc.auto_clear_seconds,
        code_length=lc.code_length,
        clear_key=lc.clear_key,
        enter_key=lc.enter_key,
    )


def generator_from_config(cfg: AppConfig) -> VHDLGenerator:
    gc = cfg.generator
    return VHDLGenerator(
        gc.api_key,
        secret_code=cfg.lock.secret_code,
        max_attempts=cfg.lock.max_attempts,
        lockout_seconds=cfg.lock.lockout_seconds,
        model=gc.model,
        base_url=gc.base_url,
        timeout=gc.timeout_s,
    )


def create_app(cfg: Optional[AppConfig] = None, generator: Optional[CodeGenerator] = None) -> FastAPI:
    """Build the API. Config is loaded at startup when not given."""
    # ----------------------- Lifecycle -----------------------
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        conf = cfg or load_config()
        set_log_level(conf.log_level)
        app.state.config = conf
        app.state.lock = LockController(AsyncioScheduler(), policy_from_config(conf))
        app.state.vhdl = GenerationSession(generator or generator_from_config(conf))
        logger.info("[API] SmartLock API started.")
        try:
            yield
        finally:
            app.state.lock.dispose()
            logger.info("[API] SmartLock API stopped.")

    app = FastAPI(title="SmartLock Simulator API", version="1.0.0", lifespan=lifespan)

    # ----------------------- Routes -----------------------
    @app.get("/ping")
    def ping():
        return {"ok": True, "ts": datetime.now(timezone.utc).isoformat()}

    @app.get("/lock")
    async def lock_view(request: Request):
        return request.app.state.lock.view()

    @app.post("/lock/keys/{key}")
    async def lock_key(key: str, request: Request):
        lock: LockController = request.app.state.lock
        lock.submit_key(key)
        return lock.view()

    @app.post("/lock/reset")
    async def lock_reset(request: Request):
        lock: LockController = request.app.state.lock
        lock.master_reset()
        return lock.view()

    @app.get("/vhdl")
    async def vhdl_view(request: Request):
        return request.app.state.vhdl.view()

    @app.post("/vhdl/generate")
    async def vhdl_generate(request: Request):
        session: GenerationSession = request.app.state.vhdl
        return await session.run()

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    cfg = load_config()
    uvicorn.run(create_app(cfg), host=cfg.host, port=cfg.port, log_level=cfg.log_level.lower())


if __name__ == "__main__":
    run()
