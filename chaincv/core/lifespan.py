from contextlib import asynccontextmanager
import logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    pipeline = app.state.pipeline

    if pipeline.settings.worker_enabled:
        pipeline.pool.start()
    else:
        logger.info("worker_pool_disabled; tasks will stay queued")

    yield

    if pipeline.settings.worker_enabled:
        await pipeline.pool.stop()
    pipeline.store.close()
