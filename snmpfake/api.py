"""
Read-only HTTP status endpoint for the simulated sensor.
"""
import logging
import threading

import uvicorn
from fastapi import FastAPI
from pydantic import BaseModel

from snmpfake.app_config import ApiSettings
from snmpfake.sensor import SimulatedSensor

logger = logging.getLogger(__name__)


class ReadingResponse(BaseModel):
    oid: str
    value: str
    excursion_active: bool
    refresh_count: int
    agent_id: str


def create_app(sensor: SimulatedSensor, agent_id: str = 'SNMPFake') -> FastAPI:
    app = FastAPI(title=f"{agent_id} status")

    @app.get("/reading", response_model=ReadingResponse)
    def get_reading() -> ReadingResponse:
        value, excursion_active, refresh_count = sensor.snapshot()
        return ReadingResponse(
            oid=sensor.config.oid_str,
            value=value,
            excursion_active=excursion_active,
            refresh_count=refresh_count,
            agent_id=agent_id,
        )

    return app


def start_api_server(app: FastAPI, settings: ApiSettings) -> threading.Thread:
    """Serve ``app`` with uvicorn from a daemon thread and return that thread."""
    # log_config=None keeps the handlers installed by AppLogger
    server = uvicorn.Server(uvicorn.Config(app, host=settings.host, port=settings.port, log_config=None))
    thread = threading.Thread(target=server.run, name='status-api', daemon=True)
    thread.start()
    logger.info(f"Status API listening on http://{settings.host}:{settings.port}/reading")
    return thread
