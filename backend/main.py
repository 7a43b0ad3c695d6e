from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from alerts import AlertDispatcher, AlertEngine, MessageGateway
from api import results_router, resources_router, alerts_router
from config import Settings
from core import ResultBuffer, get_logger, setup_logging
from services import EvaluationScheduler

logger = get_logger("main")

VERSION = "1.0.0"


def create_app(settings: Settings = None, gateway: MessageGateway = None) -> FastAPI:
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level, settings.log_json)
    
    buffer = ResultBuffer(maxlen=settings.result_retention)
    dispatcher = AlertDispatcher.create(
        gateway=gateway,
        webhook_timeout=settings.webhook_timeout_sec,
        notification_queue_size=settings.notification_queue_size,
    )
    engine = AlertEngine(
        store=buffer,
        dispatcher=dispatcher,
        history_size=settings.history_size,
        dispatch_deadline=settings.evaluation_deadline_sec,
        skip_empty_windows=settings.skip_empty_windows,
    )
    scheduler = EvaluationScheduler(engine, interval_sec=settings.evaluation_interval_sec)
    
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.autostart_scheduler:
            scheduler.start()
            logger.info("Evaluation scheduler started (every %.0fs)", settings.evaluation_interval_sec)
        yield
        await scheduler.stop()
        await engine.drain()
    
    app = FastAPI(
        title="Probewatch Alerting API",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs",
    )
    app.state.settings = settings
    app.state.result_buffer = buffer
    app.state.alert_engine = engine
    app.state.scheduler = scheduler
    
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    
    app.include_router(results_router, prefix="/api")
    app.include_router(resources_router, prefix="/api")
    app.include_router(alerts_router, prefix="/api")
    
    @app.get("/")
    async def root():
        return {
            "name": "Probewatch Alerting API",
            "version": VERSION,
            "docs": "/docs",
        }
    
    @app.get("/health")
    async def health():
        stats = engine.stats()
        return {
            "status": "healthy",
            "store": buffer.stats(),
            "engine": {
                "evaluations": stats["evaluations"],
                "triggers": stats["triggers"],
                "rules_count": stats["rules_count"],
                "uptime_seconds": stats["uptime_seconds"]
            },
            "scheduler": scheduler.stats.to_dict()
        }
    
    return app


def run():
    import uvicorn
    settings = Settings.from_env()
    uvicorn.run("main:create_app", factory=True, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
