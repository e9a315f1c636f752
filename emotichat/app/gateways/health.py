"""Health check gateway."""
import logging
from datetime import datetime, timezone
from quart import jsonify

logger = logging.getLogger("emotichat-api")


async def health_check(pipeline_initialized: bool):
    """Health check endpoint."""
    return jsonify({
        "status": "healthy" if pipeline_initialized else "starting",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "initialized": pipeline_initialized
    })
