import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tripplanner.api.routers.itineraries import router as itineraries_router
from tripplanner.api.routers.places import router as places_router
from tripplanner.core.settings import get_settings

load_dotenv()


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    application = FastAPI(title="Trip Planner Backend")

    # CORS: local frontends during development
    allowed_origins = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]

    # Production origins, e.g. ALLOWED_ORIGINS=https://trips.example.com
    if settings.allowed_origins:
        allowed_origins.extend(
            [origin.strip() for origin in settings.allowed_origins.split(",") if origin.strip()]
        )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @application.get("/healthz")
    def healthz() -> dict[str, str]:
        return {"status": "ok"}

    application.include_router(itineraries_router)
    application.include_router(places_router)
    return application


app = create_app()
