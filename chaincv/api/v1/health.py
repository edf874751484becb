from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health", summary="Health Check", description="Report API liveness and worker pool load.")
async def health_check(request: Request):
    pipeline = request.app.state.pipeline
    return {
        "status": "healthy",
        "worker_enabled": pipeline.settings.worker_enabled,
        "pending_tasks": pipeline.queue.pending_count(),
        "busy_slots": pipeline.pool.busy_slots,
        "free_slots": pipeline.pool.free_slots,
    }
