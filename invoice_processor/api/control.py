from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
import logging

from invoice_processor.api.deps import get_runtime
from invoice_processor.core.processing_config import ConfigError
from invoice_processor.core.runtime import ProcessorRuntime
from invoice_processor.schemas.processing import CycleStats, RedactedProcessingConfig

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/config", response_model=RedactedProcessingConfig)
async def get_config(runtime: ProcessorRuntime = Depends(get_runtime)):
    """Active processing config with the connection target masked."""
    return runtime.config_store.current().redacted()

@router.get("/stats", response_model=CycleStats)
async def get_stats(runtime: ProcessorRuntime = Depends(get_runtime)):
    # Zero-valued until the first cycle commits
    return runtime.current_stats()

@router.post("/config/reload", response_class=PlainTextResponse)
def reload_config(runtime: ProcessorRuntime = Depends(get_runtime)):
    """
    Re-read the config file before answering.
    Sync handler, so the file read runs in the threadpool instead of the event loop.
    """
    try:
        runtime.reload_config()
    except ConfigError as e:
        return PlainTextResponse(f"Reload failed: {e}", status_code=500)
    return "reloaded"
