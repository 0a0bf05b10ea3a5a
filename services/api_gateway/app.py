"""API gateway entrypoint."""

from fastapi import FastAPI

from services.api_gateway.dependencies import settings
from services.api_gateway.presentation.http.routes import router
from services.api_gateway.settings import configure_logging

configure_logging(settings)

app = FastAPI(title="RoadSense Hazard API")
app.include_router(router)
